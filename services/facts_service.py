from typing import List, Optional

from constants.fallback import FALLBACK_FACTS
from core.config import settings
from core.logger import logger
from services.ai_service import AIService, AIServiceError
from utils.decoders import DecodeError, decode_facts


class FactsService:
    """Facts shown by the pre-quiz loader."""

    def __init__(self, ai: Optional[AIService] = None):
        self.ai = ai or AIService()

    async def generate_facts(self, context: Optional[str] = None, count: Optional[int] = None) -> List[str]:
        context = context or "general"
        count = count or settings.FACTS_COUNT
        try:
            raw = await self.ai.generate_facts(context, count)
            facts = decode_facts(raw)
        except (AIServiceError, DecodeError) as e:
            logger.warning("Failed to fetch facts, using fallback", context=context, error=str(e))
            return list(FALLBACK_FACTS)

        if not facts:
            return list(FALLBACK_FACTS)
        return facts[:count]
