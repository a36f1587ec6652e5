from __future__ import annotations
from typing import Sequence
from .models import Answer, LessonVariation, PillarTopic


def build_pillars_prompt(core_topic: str, count: int) -> str:
	return (
		"Act as a world-class content strategist and SEO expert.\n"
		f"I want to build topical authority on the core topic: \"{core_topic}\".\n\n"
		f"Please generate exactly {count} distinct, broad \"Pillar Topics\" that would serve as the foundation "
		"for a comprehensive course or content cluster.\n"
		"These should cover the breadth of the subject. Make them distinct from each other."
	)


def build_variations_prompt(core_topic: str, pillar: PillarTopic, count: int) -> str:
	return (
		f"Context: Building authority on \"{core_topic}\".\n"
		f"Selected Pillar: \"{pillar.title}\" ({pillar.description}).\n\n"
		f"Generate exactly {count} specific \"Lesson Variations\" or content angles for this pillar.\n"
		"Vary the format/angle (e.g., specific how-to, common mistakes, tool reviews, case studies, theoretical deep dives).\n"
		"These should be actionable content pieces."
	)


def build_questions_prompt(core_topic: str, pillar: PillarTopic, variation: LessonVariation, count: int) -> str:
	return (
		f"Context: Building authority on \"{core_topic}\".\n"
		f"Pillar: \"{pillar.title}\".\n"
		f"Specific Lesson/Content Piece: \"{variation.title}\" (Angle: {variation.angle}).\n\n"
		f"Generate exactly {count} highly relevant \"Audience Questions\" that real people would type into Google "
		"or ask a mentor regarding this specific lesson.\n"
		"Focus on pain points, curiosities, and specific implementation details."
	)


def build_answer_prompt(question: str, context: str) -> str:
	return (
		f"Context: {context}\n\n"
		f"Please provide a detailed, authoritative answer to this specific question: \"{question}\".\n"
		"Use Google Search to find relevant, up-to-date information, examples, or data points to support the answer.\n"
		"The answer should be instructional and helpful."
	)


def build_image_prompt(question: str, context: str) -> str:
	return (
		"Create a simple, modern, flat-vector style educational illustration that conceptually explains "
		f"this question: \"{question}\".\n"
		f"Context: {context}.\n"
		"Style: Minimalist, clean lines, professional.\n"
		"Color Palette: Blues, Slate, Soft Purple, White background.\n"
		"No text inside the image."
	)


def build_answer_context(core_topic: str, pillar: PillarTopic, variation: LessonVariation) -> str:
	return f"Topic: {core_topic}, Pillar: {pillar.title}, Variation: {variation.title}"


ANSWER_EXCERPT_CHARS = 100


def build_chat_instruction(
	core_topic: str,
	pillar: PillarTopic,
	variation: LessonVariation,
	answers: Sequence[Answer],
) -> str:
	answered = "\n".join(
		f"- Q: {a.question}\n  A: (Excerpt) {a.answer[:ANSWER_EXCERPT_CHARS]}..." for a in answers
	)
	return (
		"You are the Topical Authority Coach.\n"
		"You are helping a user refine a content strategy.\n\n"
		"Current Strategy Context:\n"
		f"- Core Topic: \"{core_topic}\"\n"
		f"- Pillar: \"{pillar.title}\"\n"
		f"- Lesson Variation: \"{variation.title}\"\n\n"
		"The user has just generated detailed answers for the following questions:\n"
		f"{answered}\n\n"
		"Your goal is to clarify doubts, expand on specific points, or provide implementation advice based on "
		"the content generated so far.\n"
		"Be helpful, concise, and encouraging. If the user asks about something unrelated, politely steer them "
		"back to their content strategy."
	)
