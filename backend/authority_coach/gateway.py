from __future__ import annotations
import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from . import prompts
from .errors import GenerationFailure
from .gemini_client import GeminiClient, GeminiError
from .models import AudienceQuestion, Answer, ChatContext, ChatMessage, LessonVariation, PillarTopic, Source

logger = logging.getLogger(__name__)

PILLAR_COUNT = 30
VARIATION_COUNT = 10
QUESTION_COUNT = 25

NO_ANSWER_TEXT = "No answer generated."
NO_CHAT_REPLY_TEXT = "I'm not sure how to answer that."

ItemT = TypeVar("ItemT", bound=BaseModel)


def _array_schema(fields: Dict[str, str]) -> Dict[str, Any]:
	return {
		"type": "ARRAY",
		"items": {
			"type": "OBJECT",
			"properties": {name: {"type": "STRING", "description": desc} for name, desc in fields.items()},
			"required": list(fields),
		},
	}


@dataclass(frozen=True)
class BatchShape(Generic[ItemT]):
	"""Output shape of one structured generation: item model, response schema, batch size."""

	name: str
	item_model: Type[ItemT]
	response_schema: Dict[str, Any]
	count: int


PILLARS = BatchShape(
	name="pillars",
	item_model=PillarTopic,
	response_schema=_array_schema({
		"title": "A catchy, clear title for the pillar topic.",
		"description": "A brief 1-sentence description of what this pillar covers.",
		"rationale": "Why this builds authority for the core topic.",
	}),
	count=PILLAR_COUNT,
)

VARIATIONS = BatchShape(
	name="variations",
	item_model=LessonVariation,
	response_schema=_array_schema({
		"title": "The specific title of the lesson or content piece.",
		"angle": "The strategic angle (e.g., 'How-to', 'Mistake', 'Case Study').",
		"outcome": "What the user achieves or learns.",
	}),
	count=VARIATION_COUNT,
)

QUESTIONS = BatchShape(
	name="questions",
	item_model=AudienceQuestion,
	response_schema=_array_schema({
		"question": "The exact question a user would search for.",
		"intent": "Search intent: e.g., Informational, Commercial, Transactional.",
	}),
	count=QUESTION_COUNT,
)


def _extract_json_array(text: str) -> List[Any]:
	try:
		data = json.loads(text)
	except ValueError:
		data = None
		code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
		if code_block:
			try:
				data = json.loads(code_block.group(1))
			except ValueError:
				data = None
	if not isinstance(data, list):
		raise GenerationFailure("Model did not return a JSON array.")
	return data


def dedupe_sources(citations: Sequence[Dict[str, str]]) -> Tuple[Source, ...]:
	"""Collapse citations sharing a uri. The first title seen for a uri is kept."""
	seen: Dict[str, Source] = {}
	for c in citations:
		uri = c.get("uri")
		if not uri or uri in seen:
			continue
		seen[uri] = Source(title=c.get("title") or uri, uri=uri)
	return tuple(seen.values())


class GenerationGateway:
	"""Stateless facade over the Gemini calls the wizard needs."""

	def __init__(self, client: GeminiClient) -> None:
		self.client = client

	async def _generate_batch(self, shape: BatchShape[ItemT], prompt: str) -> Tuple[ItemT, ...]:
		try:
			raw = await self.client.generate_json(prompt, response_schema=shape.response_schema)
		except GeminiError as err:
			raise GenerationFailure(f"Failed to generate {shape.name}: {err}") from err
		if not raw.strip():
			raise GenerationFailure(f"Failed to generate {shape.name}: empty response")
		items = _extract_json_array(raw)
		if len(items) != shape.count:
			raise GenerationFailure(f"Expected {shape.count} {shape.name}, got {len(items)}")
		try:
			return tuple(shape.item_model.model_validate(item) for item in items)
		except ValidationError as err:
			raise GenerationFailure(f"Malformed {shape.name} item: {err.errors()[0]['msg']}") from err

	async def generate_pillars(self, core_topic: str) -> Tuple[PillarTopic, ...]:
		return await self._generate_batch(PILLARS, prompts.build_pillars_prompt(core_topic, PILLARS.count))

	async def generate_variations(self, core_topic: str, pillar: PillarTopic) -> Tuple[LessonVariation, ...]:
		prompt = prompts.build_variations_prompt(core_topic, pillar, VARIATIONS.count)
		return await self._generate_batch(VARIATIONS, prompt)

	async def generate_questions(
		self, core_topic: str, pillar: PillarTopic, variation: LessonVariation
	) -> Tuple[AudienceQuestion, ...]:
		prompt = prompts.build_questions_prompt(core_topic, pillar, variation, QUESTIONS.count)
		return await self._generate_batch(QUESTIONS, prompt)

	async def _illustrate(self, question: str, context: str) -> Optional[str]:
		# Illustrations are optional; any failure only drops the image
		try:
			return await self.client.generate_image(prompts.build_image_prompt(question, context))
		except Exception as err:
			logger.warning("Image generation failed for %r: %s", question, err)
			return None

	async def generate_detailed_answer(self, question: str, context: str) -> Answer:
		# Both calls always run to completion before the answer resolves or fails
		grounded, image_url = await asyncio.gather(
			self.client.generate_grounded(prompts.build_answer_prompt(question, context)),
			self._illustrate(question, context),
			return_exceptions=True,
		)
		if isinstance(grounded, GeminiError):
			raise GenerationFailure(f"Failed to answer {question!r}: {grounded}") from grounded
		if isinstance(grounded, BaseException):
			raise grounded
		text, citations = grounded
		return Answer(
			question=question,
			answer=text or NO_ANSWER_TEXT,
			sources=dedupe_sources(citations),
			image_url=image_url if isinstance(image_url, str) and image_url else None,
		)

	async def generate_chat_response(
		self,
		history: Sequence[ChatMessage],
		new_message: str,
		context: ChatContext,
	) -> str:
		instruction = prompts.build_chat_instruction(
			context.core_topic, context.pillar, context.variation, context.answers
		)
		try:
			reply = await self.client.chat(
				instruction,
				[(m.role.value, m.content) for m in history],
				new_message,
			)
		except GeminiError as err:
			raise GenerationFailure(f"Chat call failed: {err}") from err
		return reply or NO_CHAT_REPLY_TEXT

	async def aclose(self) -> None:
		await self.client.aclose()
