from __future__ import annotations
from enum import Enum, IntEnum
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict


class _Record(BaseModel):
	# Every record handed out by the gateway or stored in a session is immutable
	model_config = ConfigDict(frozen=True)


class PillarTopic(_Record):
	title: str
	description: str
	rationale: str


class LessonVariation(_Record):
	title: str
	angle: str
	outcome: str


class AudienceQuestion(_Record):
	question: str
	# Usually Informational / Commercial / Transactional / Navigational, but free text
	intent: str


class Source(_Record):
	title: str
	uri: str


class Answer(_Record):
	question: str
	answer: str
	sources: Tuple[Source, ...] = ()
	# data: URI of the generated illustration, if any
	image_url: Optional[str] = None


class ChatRole(str, Enum):
	USER = "user"
	MODEL = "model"


class ChatMessage(_Record):
	role: ChatRole
	content: str


class Step(IntEnum):
	INPUT = 0
	PILLARS = 1
	VARIATIONS = 2
	QUESTIONS = 3
	ANSWERS = 4
	SUMMARY = 5


class WizardSession(_Record):
	"""One snapshot of a wizard run. Operations replace it, never mutate it."""

	step: Step = Step.INPUT
	core_topic: str = ""
	selected_pillar: Optional[PillarTopic] = None
	selected_variation: Optional[LessonVariation] = None

	pillars: Tuple[PillarTopic, ...] = ()
	variations: Tuple[LessonVariation, ...] = ()
	questions: Tuple[AudienceQuestion, ...] = ()
	# Indices into `questions`, in the order they were picked
	selected_question_indices: Tuple[int, ...] = ()
	answers: Tuple[Answer, ...] = ()

	chat_history: Tuple[ChatMessage, ...] = ()
	is_chat_loading: bool = False

	is_loading: bool = False
	error: Optional[str] = None

	def unanswered_questions(self) -> Tuple[AudienceQuestion, ...]:
		if not self.answers:
			return self.questions
		answered = set(self.selected_question_indices)
		return tuple(q for i, q in enumerate(self.questions) if i not in answered)


class ChatContext(_Record):
	core_topic: str
	pillar: PillarTopic
	variation: LessonVariation
	answers: Tuple[Answer, ...] = ()
