from __future__ import annotations
import uuid
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from .. import selection
from ..errors import InvalidTransition
from ..export import EXPORT_MEDIA_TYPE, export_filename, render_document
from ..gateway import GenerationGateway
from ..gemini_client import GeminiClient
from ..models import WizardSession
from ..settings import settings
from ..wizard import WizardStateMachine


router = APIRouter(prefix="/wizard", tags=["wizard"])


class TopicRequest(BaseModel):
	topic: str


class IndexRequest(BaseModel):
	index: int


class ChatRequest(BaseModel):
	message: str


class SessionResponse(BaseModel):
	session_id: str
	session: WizardSession


class QuestionBucketsResponse(BaseModel):
	informational: List[int]
	actionable: List[int]


_sessions: Dict[str, WizardStateMachine] = {}
_gateway: Optional[GenerationGateway] = None


def get_gateway() -> GenerationGateway:
	global _gateway
	if _gateway is None:
		try:
			_gateway = GenerationGateway(GeminiClient())
		except ValueError as e:
			raise HTTPException(status_code=503, detail=str(e))
	return _gateway


async def close_gateway() -> None:
	global _gateway
	if _gateway is not None:
		await _gateway.aclose()
		_gateway = None


def _evict_oldest(keep: int) -> None:
	# dicts keep insertion order, so the first key is the oldest session
	while _sessions and len(_sessions) > keep:
		del _sessions[next(iter(_sessions))]


def _get_wizard(session_id: str) -> WizardStateMachine:
	wizard = _sessions.get(session_id)
	if wizard is None:
		raise HTTPException(status_code=404, detail="Session not found")
	return wizard


def _respond(session_id: str, session: WizardSession) -> SessionResponse:
	return SessionResponse(session_id=session_id, session=session)


@router.post("/sessions", response_model=SessionResponse)
async def create_session(gateway: GenerationGateway = Depends(get_gateway)):
	_evict_oldest(settings.wizard_max_sessions - 1)
	session_id = uuid.uuid4().hex
	wizard = WizardStateMachine(gateway)
	_sessions[session_id] = wizard
	return _respond(session_id, wizard.session)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
	return _respond(session_id, _get_wizard(session_id).session)


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
	_get_wizard(session_id)
	del _sessions[session_id]
	return {"deleted": session_id}


@router.post("/sessions/{session_id}/topic", response_model=SessionResponse)
async def submit_topic(session_id: str, req: TopicRequest):
	wizard = _get_wizard(session_id)
	try:
		return _respond(session_id, await wizard.submit_topic(req.topic))
	except InvalidTransition as e:
		raise HTTPException(status_code=409, detail=str(e))


@router.post("/sessions/{session_id}/pillar", response_model=SessionResponse)
async def select_pillar(session_id: str, req: IndexRequest):
	wizard = _get_wizard(session_id)
	try:
		return _respond(session_id, await wizard.select_pillar(req.index))
	except InvalidTransition as e:
		raise HTTPException(status_code=409, detail=str(e))


@router.post("/sessions/{session_id}/variation", response_model=SessionResponse)
async def select_variation(session_id: str, req: IndexRequest):
	wizard = _get_wizard(session_id)
	try:
		return _respond(session_id, await wizard.select_variation(req.index))
	except InvalidTransition as e:
		raise HTTPException(status_code=409, detail=str(e))


@router.post("/sessions/{session_id}/questions/{index}/toggle", response_model=SessionResponse)
async def toggle_question(session_id: str, index: int):
	wizard = _get_wizard(session_id)
	try:
		return _respond(session_id, wizard.toggle_question(index))
	except InvalidTransition as e:
		raise HTTPException(status_code=409, detail=str(e))


@router.get("/sessions/{session_id}/questions/buckets", response_model=QuestionBucketsResponse)
async def question_buckets(session_id: str):
	informational, actionable = selection.bucket_questions(_get_wizard(session_id).session.questions)
	return QuestionBucketsResponse(informational=informational, actionable=actionable)


@router.post("/sessions/{session_id}/answers", response_model=SessionResponse)
async def generate_answers(session_id: str):
	wizard = _get_wizard(session_id)
	try:
		return _respond(session_id, await wizard.generate_answers())
	except InvalidTransition as e:
		raise HTTPException(status_code=409, detail=str(e))


@router.post("/sessions/{session_id}/finish", response_model=SessionResponse)
async def finish(session_id: str):
	wizard = _get_wizard(session_id)
	try:
		return _respond(session_id, wizard.finish())
	except InvalidTransition as e:
		raise HTTPException(status_code=409, detail=str(e))


@router.post("/sessions/{session_id}/back", response_model=SessionResponse)
async def back(session_id: str):
	wizard = _get_wizard(session_id)
	try:
		return _respond(session_id, wizard.back())
	except InvalidTransition as e:
		raise HTTPException(status_code=409, detail=str(e))


@router.post("/sessions/{session_id}/reset", response_model=SessionResponse)
async def reset(session_id: str):
	wizard = _get_wizard(session_id)
	try:
		return _respond(session_id, wizard.reset())
	except InvalidTransition as e:
		raise HTTPException(status_code=409, detail=str(e))


@router.post("/sessions/{session_id}/chat", response_model=SessionResponse)
async def send_chat(session_id: str, req: ChatRequest):
	wizard = _get_wizard(session_id)
	try:
		return _respond(session_id, await wizard.send_chat(req.message))
	except InvalidTransition as e:
		raise HTTPException(status_code=409, detail=str(e))


@router.get("/sessions/{session_id}/export")
async def export_document(session_id: str):
	session = _get_wizard(session_id).session
	try:
		document = render_document(session)
	except InvalidTransition as e:
		raise HTTPException(status_code=409, detail=str(e))
	filename = export_filename(session.core_topic)
	return Response(
		content=document,
		media_type=EXPORT_MEDIA_TYPE,
		headers={"Content-Disposition": f'attachment; filename="{filename}"'},
	)
