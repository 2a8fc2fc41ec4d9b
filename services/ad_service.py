from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import logger
from models.ad import Ad
from schemas.ads import AdRecord, AdSlot, HALF_SKIP_SLOTS, InterstitialAdConfig

VIDEO_DURATION_SEC = 40
STATIC_DURATION_SEC = 10
MAX_HALF_SKIP_SEC = 30
MIN_SKIP_SEC = 5


def is_video_ad(ad: AdRecord) -> bool:
    return ad.ad_type == "video" or ".mp4" in ad.media_url.lower()


def skippable_after_sec(slot: AdSlot, duration_sec: int) -> int:
    if slot in HALF_SKIP_SLOTS:
        return min(MAX_HALF_SKIP_SEC, duration_sec // 2)
    return max(MIN_SKIP_SEC, duration_sec - 5)


def build_interstitial_config(ad: AdRecord, slot: AdSlot) -> InterstitialAdConfig:
    """Convert an ad record into display settings using the fixed per-slot policy."""
    video = is_video_ad(ad)
    duration_sec = VIDEO_DURATION_SEC if video else STATIC_DURATION_SEC
    return InterstitialAdConfig(
        kind="video" if video else "static",
        media_url=ad.media_url,
        duration_ms=duration_sec * 1000,
        skippable_after_ms=skippable_after_sec(slot, duration_sec) * 1000,
        sponsor_label=ad.company_name or "Featured sponsor",
    )


class AdService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_ad_for_slot(self, slot: Union[AdSlot, str]) -> Optional[AdRecord]:
        slot = AdSlot(slot)
        result = await self.db.execute(
            select(Ad)
            .filter(Ad.ad_slot == slot.value, Ad.is_active == True)
            .order_by(Ad.id)
            .limit(1)
        )
        ad = result.scalar_one_or_none()
        if not ad:
            logger.info("No active ad for slot", slot=slot.value)
            return None

        return AdRecord(
            id=ad.id,
            company_name=ad.company_name or "",
            ad_slot=slot,
            ad_type=ad.ad_type if ad.ad_type in ("image", "video") else "image",
            media_url=ad.media_url or "",
            redirect_url=ad.redirect_url,
            revenue=ad.revenue or 0.0,
            is_active=ad.is_active,
        )

    async def resolve_interstitial(self, slot: Union[AdSlot, str]) -> Optional[InterstitialAdConfig]:
        """Active ad for the slot as a display-ready config, or None if there is nothing to show."""
        slot = AdSlot(slot)
        try:
            ad = await self.get_ad_for_slot(slot)
        except SQLAlchemyError as e:
            logger.error("Ad lookup failed", slot=slot.value, error=str(e))
            return None

        if not ad:
            return None

        config = build_interstitial_config(ad, slot)
        logger.info(
            "Interstitial resolved",
            slot=slot.value,
            kind=config.kind,
            duration_ms=config.duration_ms,
            skippable_after_ms=config.skippable_after_ms,
        )
        return config
