from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Sequence, TypeVar

from . import prompts, selection
from .errors import ChatFailure, GenerationFailure, InvalidTransition
from .gateway import GenerationGateway
from .models import ChatContext, ChatMessage, ChatRole, Step, WizardSession

logger = logging.getLogger(__name__)

PILLARS_ERROR = "Failed to generate pillars. Please try again."
VARIATIONS_ERROR = "Failed to generate variations. Please try again."
QUESTIONS_ERROR = "Failed to generate questions. Please try again."
ANSWERS_ERROR = "Failed to generate answers. Please try selecting fewer questions."
CHAT_APOLOGY = "I'm sorry, I'm having trouble connecting right now. Please try again."

T = TypeVar("T")


class WizardStateMachine:
	"""Drives one user's session through the strategy funnel.

	Every operation replaces ``self.session`` with a new snapshot. Generation
	failures never escape: they end up in ``session.error`` (or, for chat, as a
	model message). Triggers that are not available in the current state raise
	``InvalidTransition`` and leave the snapshot as it was.
	"""

	def __init__(self, gateway: GenerationGateway, session: WizardSession | None = None) -> None:
		self.gateway = gateway
		self.session = session or WizardSession()

	def _replace(self, **changes: Any) -> WizardSession:
		self.session = self.session.model_copy(update=changes)
		return self.session

	def _require_step(self, *steps: Step) -> None:
		if self.session.step not in steps:
			allowed = ", ".join(s.name for s in steps)
			raise InvalidTransition(f"Not available at step {self.session.step.name} (expected {allowed})")

	def _require_idle(self) -> None:
		if self.session.is_loading:
			raise InvalidTransition("A generation step is already in progress")

	async def _forward(
		self,
		action: str,
		error_message: str,
		call: Callable[[], Awaitable[T]],
		reduce: Callable[[T], Dict[str, Any]],
	) -> WizardSession:
		self._replace(is_loading=True, error=None)
		try:
			result = await call()
		except GenerationFailure as err:
			logger.warning("%s failed: %s", action, err)
			return self._replace(is_loading=False, error=error_message)
		except Exception:
			logger.exception("%s failed unexpectedly", action)
			return self._replace(is_loading=False, error=error_message)
		logger.info("%s succeeded", action)
		return self._replace(is_loading=False, error=None, **reduce(result))

	async def submit_topic(self, topic: str) -> WizardSession:
		self._require_step(Step.INPUT)
		self._require_idle()
		if not topic or not topic.strip():
			raise InvalidTransition("A core topic is required")
		return await self._forward(
			"generate pillars",
			PILLARS_ERROR,
			lambda: self.gateway.generate_pillars(topic),
			lambda pillars: {"step": Step.PILLARS, "core_topic": topic, "pillars": pillars},
		)

	async def select_pillar(self, index: int) -> WizardSession:
		self._require_step(Step.PILLARS)
		self._require_idle()
		pillar = _pick(self.session.pillars, index, "pillar")
		core_topic = self.session.core_topic
		return await self._forward(
			"generate variations",
			VARIATIONS_ERROR,
			lambda: self.gateway.generate_variations(core_topic, pillar),
			lambda variations: {"step": Step.VARIATIONS, "selected_pillar": pillar, "variations": variations},
		)

	async def select_variation(self, index: int) -> WizardSession:
		self._require_step(Step.VARIATIONS)
		self._require_idle()
		pillar = self.session.selected_pillar
		if pillar is None:
			raise InvalidTransition("A pillar must be selected first")
		variation = _pick(self.session.variations, index, "variation")
		core_topic = self.session.core_topic
		return await self._forward(
			"generate questions",
			QUESTIONS_ERROR,
			lambda: self.gateway.generate_questions(core_topic, pillar, variation),
			lambda questions: {
				"step": Step.QUESTIONS,
				"selected_variation": variation,
				"questions": questions,
				"selected_question_indices": (),
			},
		)

	def toggle_question(self, index: int) -> WizardSession:
		self._require_step(Step.QUESTIONS)
		self._require_idle()
		_pick(self.session.questions, index, "question")
		return self._replace(
			selected_question_indices=selection.toggle(self.session.selected_question_indices, index)
		)

	async def generate_answers(self) -> WizardSession:
		self._require_step(Step.QUESTIONS)
		self._require_idle()
		s = self.session
		if s.selected_pillar is None or s.selected_variation is None:
			raise InvalidTransition("A pillar and a variation must be selected first")
		if not selection.can_submit(s.selected_question_indices):
			return s
		questions = [s.questions[i] for i in s.selected_question_indices]
		context = prompts.build_answer_context(s.core_topic, s.selected_pillar, s.selected_variation)

		async def answer_all():
			# Every call settles before the batch resolves; results keep request order
			results = await asyncio.gather(
				*(self.gateway.generate_detailed_answer(q.question, context) for q in questions),
				return_exceptions=True,
			)
			for result in results:
				if isinstance(result, BaseException):
					raise result
			return results

		return await self._forward(
			f"generate {len(questions)} answers",
			ANSWERS_ERROR,
			answer_all,
			lambda answers: {"step": Step.ANSWERS, "answers": tuple(answers)},
		)

	def finish(self) -> WizardSession:
		self._require_step(Step.ANSWERS)
		self._require_idle()
		return self._replace(step=Step.SUMMARY, error=None)

	def back(self) -> WizardSession:
		"""Step back once, discarding whatever was chosen or generated past the target step."""
		if self.session.step == Step.INPUT:
			return self.session
		self._require_step(Step.PILLARS, Step.VARIATIONS, Step.QUESTIONS, Step.ANSWERS)
		self._require_idle()
		if self.session.is_chat_loading:
			raise InvalidTransition("Wait for the coach to reply before going back")
		target = Step(self.session.step - 1)
		changes: Dict[str, Any] = {"step": target, "error": None}
		if target <= Step.QUESTIONS:
			changes.update(answers=(), chat_history=())
		if target <= Step.VARIATIONS:
			changes.update(selected_variation=None, questions=(), selected_question_indices=())
		if target <= Step.PILLARS:
			changes.update(selected_pillar=None, variations=())
		if target == Step.INPUT:
			changes.update(pillars=())
		return self._replace(**changes)

	def reset(self) -> WizardSession:
		self._require_step(Step.SUMMARY)
		if self.session.is_chat_loading:
			raise InvalidTransition("Wait for the coach to reply before starting over")
		self.session = WizardSession()
		return self.session

	async def _request_chat_reply(self, history: Sequence[ChatMessage], message: str, context: ChatContext) -> str:
		try:
			return await self.gateway.generate_chat_response(history, message, context)
		except GenerationFailure as err:
			raise ChatFailure(str(err)) from err

	async def send_chat(self, message: str) -> WizardSession:
		self._require_step(Step.ANSWERS, Step.SUMMARY)
		s = self.session
		if s.selected_pillar is None or s.selected_variation is None:
			raise InvalidTransition("Chat needs a selected pillar and variation")
		if s.is_chat_loading:
			raise InvalidTransition("The coach is still replying")
		if not message or not message.strip():
			raise InvalidTransition("Message is empty")
		history = s.chat_history
		context = ChatContext(
			core_topic=s.core_topic,
			pillar=s.selected_pillar,
			variation=s.selected_variation,
			answers=s.answers,
		)
		self._replace(
			chat_history=history + (ChatMessage(role=ChatRole.USER, content=message),),
			is_chat_loading=True,
		)
		try:
			reply = await self._request_chat_reply(history, message, context)
		except ChatFailure as err:
			logger.warning("chat reply failed: %s", err)
			reply = CHAT_APOLOGY
		except Exception:
			logger.exception("chat reply failed unexpectedly")
			reply = CHAT_APOLOGY
		return self._replace(
			chat_history=self.session.chat_history + (ChatMessage(role=ChatRole.MODEL, content=reply),),
			is_chat_loading=False,
		)


def _pick(items: Sequence[T], index: int, what: str) -> T:
	if not 0 <= index < len(items):
		raise InvalidTransition(f"No {what} at index {index}")
	return items[index]
