import logging
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from healthhub.core.errors import ServiceUnavailable
from healthhub.core.profiles import get_profile, profile_snapshot
from healthhub.core.prompts import (
    build_meal_plan_prompt,
    build_recommendations_prompt,
    build_workout_plan_prompt,
)
from healthhub.services.llm import LLMRequestError, TextGenerator, parse_model_reply

logger = logging.getLogger("uvicorn.error")

NOT_CONFIGURED_MESSAGE = "AI service not configured. Please add an API key to the environment variables."
UNAVAILABLE_MESSAGE = "AI service is currently unavailable. Please try again later."


class AIGateway:
    """Builds prompts from a user's profile and relays them to the text generator.

    The generator is injected so tests can substitute a fake; ``None`` means the
    service is unconfigured and every operation fails before a prompt is sent.
    """

    def __init__(self, generator: Optional[TextGenerator]) -> None:
        self.generator = generator

    def _profile(self, db: Session, user_id: int) -> dict[str, Any]:
        return profile_snapshot(get_profile(db, user_id))

    def _require_generator(self) -> TextGenerator:
        if self.generator is None:
            raise ServiceUnavailable(NOT_CONFIGURED_MESSAGE)
        return self.generator

    def _relay(self, generator: TextGenerator, user_id: int, kind: str, prompt: str) -> dict[str, Any]:
        logger.info("ai_request user_id=%s kind=%s prompt_chars=%s", user_id, kind, len(prompt))
        try:
            reply = generator.generate_text(prompt)
        except LLMRequestError as exc:
            logger.exception(
                "ai_request_error user_id=%s kind=%s provider=%s status=%s",
                user_id,
                kind,
                exc.provider,
                exc.status_code,
            )
            raise ServiceUnavailable(UNAVAILABLE_MESSAGE) from exc
        data = parse_model_reply(reply)
        if "rawResponse" in data:
            logger.warning("ai_reply_not_json user_id=%s kind=%s", user_id, kind)
        return data

    def generate_meal_plan(
        self, db: Session, user_id: int, preferences: Optional[str] = None, duration: int = 7
    ) -> dict[str, Any]:
        profile = self._profile(db, user_id)
        generator = self._require_generator()
        prompt = build_meal_plan_prompt(profile, preferences, duration)
        return self._relay(generator, user_id, "meal_plan", prompt)

    def generate_workout_plan(
        self,
        db: Session,
        user_id: int,
        preferences: Optional[str] = None,
        duration: int = 7,
        equipment: Sequence[str] = (),
    ) -> dict[str, Any]:
        profile = self._profile(db, user_id)
        generator = self._require_generator()
        prompt = build_workout_plan_prompt(profile, preferences, duration, equipment)
        return self._relay(generator, user_id, "workout_plan", prompt)

    def generate_recommendations(self, db: Session, user_id: int, focus: str = "general") -> dict[str, Any]:
        profile = self._profile(db, user_id)
        generator = self._require_generator()
        prompt = build_recommendations_prompt(profile, focus)
        return self._relay(generator, user_id, "recommendations", prompt)
