# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""User-facing messages for cancellation outcomes and errors."""

import logging

from src.config import get_settings
from src.services.relist_service import CancellationOutcome, ListingTab

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "ko")

OUTCOME_MESSAGES: dict[str, dict[CancellationOutcome, str]] = {
    "en": {
        CancellationOutcome.MERGED: (
            "The cancelled period has been merged with an existing ad. "
            "Your number of listings is unchanged."
        ),
        CancellationOutcome.RELISTED: (
            "Reservation cancelled. Property is back in advertising."
        ),
        CancellationOutcome.LIMIT_EXCEEDED: (
            "Moved to Expired Listings due to ad limit ({limit} properties)."
        ),
        CancellationOutcome.SHORT_TERM: (
            "Moved to Expired Listings as the available period is less than "
            "{minimum_stay} days."
        ),
    },
    "ko": {
        CancellationOutcome.MERGED: (
            "취소된 기간이 기존 광고 중인 매물과 병합되었습니다. 매물 개수가 유지됩니다."
        ),
        CancellationOutcome.RELISTED: "예약이 취소되어 매물이 다시 광고 중입니다.",
        CancellationOutcome.LIMIT_EXCEEDED: (
            "광고 가능한 매물 한도({limit}개) 초과로 인해 해당 매물은 "
            "광고종료 탭으로 이동되었습니다."
        ),
        CancellationOutcome.SHORT_TERM: (
            "남은 가용 기간이 {minimum_stay}일 미만이라 광고종료 탭으로 이동되었습니다."
        ),
    },
}

# Short freed period on a property that still advertises other dates
SHORT_TERM_STILL_LISTED_MESSAGES: dict[str, str] = {
    "en": (
        "Reservation cancelled. The freed period is shorter than {minimum_stay} "
        "days, so it was not advertised. Your other dates stay listed."
    ),
    "ko": (
        "예약이 취소되었습니다. 비워진 기간이 {minimum_stay}일 미만이라 광고되지 "
        "않았으며, 나머지 기간은 계속 광고됩니다."
    ),
}

ERROR_MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "invalid_range": "The selected dates are not available.",
        "invalid_state_transition": "This action is not allowed in the current state.",
        "not_found": "The requested item was not found.",
        "minimum_stay_unavailable": (
            "Bookings must be at least {minimum_stay} days. "
            "Please choose another check-in date."
        ),
        "concurrent_modification": (
            "Another change was made at the same time. Please try again."
        ),
        "listing_limit_reached": "You can only advertise up to {limit} properties.",
    },
    "ko": {
        "invalid_range": "선택한 날짜는 예약할 수 없습니다.",
        "invalid_state_transition": "현재 상태에서는 할 수 없는 작업입니다.",
        "not_found": "요청한 항목을 찾을 수 없습니다.",
        "minimum_stay_unavailable": (
            "최소 {minimum_stay}일 이상 예약해야 합니다. 다른 체크인 날짜를 선택하세요."
        ),
        "concurrent_modification": (
            "동시에 다른 변경이 발생했습니다. 다시 시도해 주세요."
        ),
        "listing_limit_reached": "매물은 인당 최대 {limit}개까지 광고할 수 있습니다.",
    },
}


def resolve_language(
    lang: str | None = None, accept_language: str | None = None
) -> str:
    """Pick the message language for a request.

    Args:
        lang: Explicit ``lang`` query parameter.
        accept_language: ``Accept-Language`` header value.

    Returns:
        A supported language code, falling back to the configured default.
    """
    candidates: list[str] = []
    if lang:
        candidates.append(lang)
    if accept_language:
        # "ko-KR,ko;q=0.9,en;q=0.8" -> ["ko-KR", "ko", "en"]
        candidates.extend(
            part.split(";")[0].strip() for part in accept_language.split(",")
        )

    for candidate in candidates:
        code = candidate.lower().split("-")[0]
        if code in SUPPORTED_LANGUAGES:
            return code

    default = get_settings().default_language
    if default not in SUPPORTED_LANGUAGES:
        logger.warning("Unsupported default language %s, using en", default)
        return "en"
    return default


def outcome_message(
    outcome: CancellationOutcome,
    lang: str = "en",
    limit: int | None = None,
    minimum_stay: int | None = None,
    tab: ListingTab | None = None,
) -> str:
    """Get the message shown after a cancellation.

    Args:
        outcome: Cancellation outcome.
        lang: Supported language code.
        limit: Owner's advertising cap. Defaults to settings.
        minimum_stay: Minimum stay in days. Defaults to settings.
        tab: Tab the property ends up in; a short stretch on a property that
            stays active gets its own message.

    Returns:
        Localized message.
    """
    settings = get_settings()
    if outcome is CancellationOutcome.SHORT_TERM and tab is ListingTab.ACTIVE:
        template = SHORT_TERM_STILL_LISTED_MESSAGES.get(
            lang, SHORT_TERM_STILL_LISTED_MESSAGES["en"]
        )
    else:
        template = OUTCOME_MESSAGES.get(lang, OUTCOME_MESSAGES["en"])[outcome]
    return template.format(
        limit=limit if limit is not None else settings.max_active_listings,
        minimum_stay=minimum_stay or settings.minimum_stay_days,
    )


def error_message(
    error_type: str, lang: str = "en", limit: int | None = None
) -> str | None:
    """Get the localized message for an error type.

    Args:
        error_type: ``error_type`` of a :class:`src.exceptions.RelistError`.
        lang: Supported language code.
        limit: Cap to mention for listing limit errors.

    Returns:
        Localized message, or None for unknown error types.
    """
    settings = get_settings()
    template = ERROR_MESSAGES.get(lang, ERROR_MESSAGES["en"]).get(error_type)
    if template is None:
        return None
    return template.format(
        limit=limit if limit is not None else settings.max_active_listings,
        minimum_stay=settings.minimum_stay_days,
    )
