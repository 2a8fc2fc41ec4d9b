from enum import Enum
from typing import Dict, Optional

from schemas.base import CamelModel


class AdSlot(str, Enum):
    T20 = "T20"
    IPL = "IPL"
    ODI = "ODI"
    WPL = "WPL"
    TEST = "Test"
    MIXED = "Mixed"
    Q1_Q2 = "Q1_Q2"
    Q2_Q3 = "Q2_Q3"
    Q3_Q4 = "Q3_Q4"
    Q4_Q5 = "Q4_Q5"
    AFTER_QUIZ = "AfterQuiz"


CUBE_AD_SLOTS = (AdSlot.T20, AdSlot.IPL, AdSlot.ODI, AdSlot.WPL, AdSlot.TEST, AdSlot.MIXED)

# 0-based index of the question being arrived at -> slot shown before it
BETWEEN_QUESTION_SLOTS: Dict[int, AdSlot] = {
    1: AdSlot.Q1_Q2,
    2: AdSlot.Q2_Q3,
    3: AdSlot.Q3_Q4,
    4: AdSlot.Q4_Q5,
}

# Slots whose skip button appears at half the ad duration
HALF_SKIP_SLOTS = (AdSlot.Q3_Q4, AdSlot.AFTER_QUIZ)


def slot_for_question_index(index: int) -> Optional[AdSlot]:
    return BETWEEN_QUESTION_SLOTS.get(index)


class AdRecord(CamelModel):
    id: int
    company_name: str = ""
    ad_slot: AdSlot
    ad_type: str = "image"  # image | video
    media_url: str = ""
    redirect_url: Optional[str] = None
    revenue: float = 0.0
    is_active: bool = True


class InterstitialAdConfig(CamelModel):
    kind: str  # static | video
    media_url: str
    duration_ms: int
    skippable_after_ms: int
    sponsor_label: str
