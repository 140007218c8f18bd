# field_trip_planner/llm.py
import json
from typing import Any, Dict, List, Optional, Protocol

from openai import AsyncOpenAI

from field_trip_planner.config import Settings
from field_trip_planner.logs import get_logger
from field_trip_planner.schemas import GeoLocation

logger = get_logger(__name__)

DISCOVERY_SYSTEM = """You are a careful educational travel researcher.
Only name real, currently operating places that exist near the given coordinates.
Respond ONLY in JSON with the schema:
  {"places": [{"label": "Exact place name", "url": "official website or null"}]}
Leave the array empty when uncertain. Never invent URLs.
"""

DISCOVERY_TEMPLATE = """{prompt}

Anchor point: {name} (lat {lat:.4f}, lng {lng:.4f}).
Return at most {limit} places.
"""

ITINERARY_SYSTEM = """You are a world-class educational travel specialist planning school excursions.
Return ONLY valid JSON with the schema:
  {"itinerary": [{"day": 1, "description": "...", "poi_name": "optional exact POI name"}],
   "poi_descriptions": [{"name": "POI name from the list", "description": "..."}]}
"""


def clean_json_text(raw: Optional[str]) -> str:
    """Strip markdown code fences models sometimes wrap around JSON."""
    if not raw:
        return "{}"
    return raw.replace("```json", "").replace("```", "").strip()


class PlaceDiscovery(Protocol):
    @property
    def available(self) -> bool:
        ...

    async def discover_places(self, prompt: str, anchor: GeoLocation, limit: int = 8) -> List[Dict[str, Optional[str]]]:
        ...


class ItineraryGenerator(Protocol):
    @property
    def available(self) -> bool:
        ...

    async def generate_itinerary(self, prompt: str) -> Dict[str, Any]:
        ...


class OpenAIClient:
    """Thin JSON-mode chat wrapper; a key is drawn from the settings per call."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def available(self) -> bool:
        return bool(self.settings.openai_api_keys)

    async def chat_json(self, system: str, user: str, *, temperature: float = 0.2) -> Dict[str, Any]:
        api_key = self.settings.pick_openai_key()
        if not api_key:
            logger.info("Skipping LLM call (no OpenAI key configured)")
            return {}

        logger.info("Invoking LLM model %s", self.settings.llm_model)
        async with AsyncOpenAI(api_key=api_key, timeout=self.settings.http_timeout, max_retries=0) as client:
            resp = await client.chat.completions.create(
                model=self.settings.llm_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        raw = resp.choices[0].message.content
        try:
            parsed = json.loads(clean_json_text(raw))
        except ValueError:
            logger.warning("LLM response was not valid JSON; ignoring", exc_info=True)
            return {}
        if not isinstance(parsed, dict):
            logger.warning("LLM response was JSON but not an object; ignoring")
            return {}
        return parsed


class OpenAIPlaceDiscovery(OpenAIClient):
    async def discover_places(self, prompt: str, anchor: GeoLocation, limit: int = 8) -> List[Dict[str, Optional[str]]]:
        user_prompt = DISCOVERY_TEMPLATE.format(
            prompt=prompt,
            name=anchor.name,
            lat=anchor.lat,
            lng=anchor.lng,
            limit=limit,
        )
        payload = await self.chat_json(DISCOVERY_SYSTEM, user_prompt)

        places: List[Dict[str, Optional[str]]] = []
        seen: set[str] = set()
        for item in payload.get("places") or []:
            if not isinstance(item, dict):
                continue
            label = item.get("label")
            if not isinstance(label, str) or not label.strip() or label.strip() in seen:
                continue
            url = item.get("url")
            seen.add(label.strip())
            places.append({"label": label.strip(), "url": url if isinstance(url, str) and url else None})
        logger.info("LLM discovery suggested %d place(s) near %s", len(places), anchor.name)
        return places[:limit]


class OpenAIItineraryGenerator(OpenAIClient):
    async def generate_itinerary(self, prompt: str) -> Dict[str, Any]:
        return await self.chat_json(ITINERARY_SYSTEM, prompt, temperature=0.4)
