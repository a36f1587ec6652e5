from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional, Sequence, Tuple
from .settings import settings

logger = logging.getLogger(__name__)


class GeminiError(RuntimeError):
	"""Transport failure or an envelope we could not read."""


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		image_model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.image_model = image_model or settings.gemini_image_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or "https://generativelanguage.googleapis.com/v1beta/models"
			self._auth_in_query = True
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=transport)

	def _endpoint(self, model: str) -> str:
		return f"{self.base_url.rstrip('/')}/{model}:generateContent"

	async def generate_json(
		self,
		prompt: str,
		*,
		response_schema: Dict[str, Any],
		temperature: Optional[float] = None,
	) -> str:
		payload: Dict[str, Any] = {
			"contents": [{"role": "user", "parts": [{"text": prompt}]}],
			"generationConfig": {
				"responseMimeType": "application/json",
				"responseSchema": response_schema,
				"temperature": settings.generation_temperature if temperature is None else temperature,
			},
		}
		data = await self._post_payload(payload)
		return self._candidate_text(data)

	async def generate_grounded(self, prompt: str) -> Tuple[str, List[Dict[str, str]]]:
		"""Text generation with the Google Search tool enabled.

		Returns the answer text and the raw web citations as ``{"title", "uri"}``
		dicts in the order the API reported them (duplicates included).
		"""
		payload: Dict[str, Any] = {
			"contents": [{"role": "user", "parts": [{"text": prompt}]}],
			"tools": [{"google_search": {}}],
		}
		data = await self._post_payload(payload)
		citations: List[Dict[str, str]] = []
		candidate = self._first_candidate(data) or {}
		metadata = candidate.get("groundingMetadata") or {}
		chunks = (metadata.get("groundingChunks") or []) if isinstance(metadata, dict) else None
		if not isinstance(chunks, list):
			raise GeminiError("Unexpected Gemini response: malformed groundingMetadata")
		for chunk in chunks:
			web = chunk.get("web") if isinstance(chunk, dict) else None
			if not isinstance(web, dict) or not web.get("uri"):
				continue
			citations.append({"title": str(web.get("title") or web["uri"]), "uri": str(web["uri"])})
		return self._candidate_text(data), citations

	async def generate_image(self, prompt: str, *, aspect_ratio: Optional[str] = None) -> Optional[str]:
		payload: Dict[str, Any] = {
			"contents": [{"role": "user", "parts": [{"text": prompt}]}],
			"generationConfig": {
				"responseModalities": ["IMAGE"],
				"imageConfig": {"aspectRatio": aspect_ratio or settings.image_aspect_ratio},
			},
		}
		data = await self._post_payload(payload, model=self.image_model)
		for part in self._candidate_parts(data):
			inline = part.get("inlineData")
			if isinstance(inline, dict) and inline.get("data"):
				mime = inline.get("mimeType") or "image/png"
				return f"data:{mime};base64,{inline['data']}"
		return None

	async def chat(
		self,
		system_instruction: str,
		history: Sequence[Tuple[str, str]],
		message: str,
	) -> str:
		contents: List[Dict[str, Any]] = [
			{"role": role, "parts": [{"text": text}]} for role, text in history
		]
		contents.append({"role": "user", "parts": [{"text": message}]})
		payload: Dict[str, Any] = {
			"systemInstruction": {"parts": [{"text": system_instruction}]},
			"contents": contents,
		}
		data = await self._post_payload(payload)
		return self._candidate_text(data)

	async def _post_payload(self, payload: Dict[str, Any], *, model: Optional[str] = None) -> Dict[str, Any]:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		url = self._endpoint(model or self.model)
		try:
			r = await self._client.post(url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			logger.warning("Gemini returned HTTP %s for %s", http_err.response.status_code, model or self.model)
			raise GeminiError(f"Gemini call failed with HTTP {http_err.response.status_code}") from http_err
		except httpx.HTTPError as net_err:
			raise GeminiError(f"Gemini request failed: {net_err}") from net_err
		try:
			data = r.json()
		except ValueError as err:
			raise GeminiError(f"Unexpected Gemini response: {r.text[:200]}") from err
		if not isinstance(data, dict):
			raise GeminiError("Unexpected Gemini response: not a JSON object")
		return data

	@staticmethod
	def _first_candidate(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
		candidates = data.get("candidates")
		if not candidates:
			return None
		if not isinstance(candidates, list) or not isinstance(candidates[0], dict):
			raise GeminiError("Unexpected Gemini response: malformed candidates")
		return candidates[0]

	@classmethod
	def _candidate_parts(cls, data: Dict[str, Any]) -> List[Dict[str, Any]]:
		# Blocked or empty generations come back without content; that is an empty result, not an error
		candidate = cls._first_candidate(data)
		if candidate is None or candidate.get("content") is None:
			return []
		content = candidate["content"]
		parts = content.get("parts") if isinstance(content, dict) else None
		if parts is None and isinstance(content, dict):
			return []
		if not isinstance(parts, list):
			raise GeminiError("Unexpected Gemini response: malformed content")
		return [p for p in parts if isinstance(p, dict)]

	@classmethod
	def _candidate_text(cls, data: Dict[str, Any]) -> str:
		texts = [
			p["text"] for p in cls._candidate_parts(data)
			if isinstance(p.get("text"), str) and not p.get("thought")
		]
		return "".join(texts)

	async def aclose(self) -> None:
		await self._client.aclose()
