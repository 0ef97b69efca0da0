"""Store opening hours: Monday to Friday, local time of the business."""

from datetime import datetime
from zoneinfo import ZoneInfo

from shadebot.config import Settings


def local_time(now: datetime, settings: Settings) -> datetime:
    return now.astimezone(ZoneInfo(settings.business_timezone))


def is_business_hours(now: datetime, settings: Settings) -> bool:
    local = local_time(now, settings)
    return local.weekday() < 5 and settings.business_hours_start <= local.hour < settings.business_hours_end


def next_opening(now: datetime, settings: Settings) -> str:
    """Human phrase for when an advisor is back, e.g. "mañana a las 9:00"."""
    local = local_time(now, settings)
    day, hour = local.weekday(), local.hour
    opening = f"a las {settings.business_hours_start}:00"

    if day < 5 and hour < settings.business_hours_start:
        return f"hoy {opening}"
    if day == 4 and hour >= settings.business_hours_end:
        return f"el lunes {opening}"
    if day == 5:
        return f"el lunes {opening}"
    if day == 6:
        return f"mañana lunes {opening}"
    if hour >= settings.business_hours_end:
        return f"mañana {opening}"
    return f"el siguiente día hábil {opening}"


def auto_escalation_threshold(now: datetime, settings: Settings) -> int:
    """Generic replies tolerated before handoff: fewer while advisors are online."""
    if is_business_hours(now, settings):
        return settings.business_hours_unknown_threshold
    return settings.unknown_escalation_threshold
