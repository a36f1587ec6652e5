from __future__ import annotations
from typing import List, Sequence, Tuple
from .models import AudienceQuestion

MAX_SELECTED_QUESTIONS = 5

INFORMATIONAL = "informational"
ACTIONABLE = "actionable"


def toggle(selection: Tuple[int, ...], index: int, *, limit: int = MAX_SELECTED_QUESTIONS) -> Tuple[int, ...]:
	"""Return the selection with ``index`` toggled.

	Selected indices are removed unconditionally. A new index is appended only
	while fewer than ``limit`` are selected; past the limit the selection comes
	back unchanged.
	"""
	if index in selection:
		return tuple(i for i in selection if i != index)
	if len(selection) >= limit:
		return selection
	return selection + (index,)


def can_submit(selection: Sequence[int], *, limit: int = MAX_SELECTED_QUESTIONS) -> bool:
	return 0 < len(selection) <= limit


def intent_bucket(question: AudienceQuestion) -> str:
	return INFORMATIONAL if "info" in question.intent.lower() else ACTIONABLE


def bucket_questions(questions: Sequence[AudienceQuestion]) -> Tuple[List[int], List[int]]:
	"""Split a batch into (informational, actionable) index lists, keeping batch order."""
	informational: List[int] = []
	actionable: List[int] = []
	for i, q in enumerate(questions):
		(informational if intent_bucket(q) == INFORMATIONAL else actionable).append(i)
	return informational, actionable
