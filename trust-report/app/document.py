from __future__ import annotations

import random
import re
from datetime import datetime
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo

from . import styles as S
from .errors import UnknownVerdictError
from .nodes import Node, document, image, merge, page, text, view
from .schemas import Factor, TrustAnalytics, User


REPORT_TZ = ZoneInfo("Europe/Moscow")
DEFAULT_CONTEXT = "Mini app"

# [low, high) bounds for the hand-stamped look of the verdict seal
STAMP_ROTATION = (30, 40)
STAMP_TOP = (65, 75)
STAMP_RIGHT = (40, 50)

_STAGE_SUFFIX = re.compile(r"stage$", re.IGNORECASE)


def max_score(factors: Iterable[Factor]) -> Union[int, float]:
    return sum(f.max_score for f in factors)


def format_report_date(seconds: Union[int, float]) -> str:
    # ru-RU short date and time, e.g. "18.10.2026, 14:05"
    return datetime.fromtimestamp(seconds, tz=REPORT_TZ).strftime("%d.%m.%Y, %H:%M")


def full_name(user: User) -> str:
    return " ".join([user.first_name, user.last_name or ""]).strip()


def verdict_short(verdict: str) -> str:
    return _STAGE_SUFFIX.sub("", verdict)


def verdict_color(verdict: str) -> str:
    try:
        return S.VERDICT_COLORS[verdict]
    except KeyError:
        raise UnknownVerdictError(verdict) from None


def upper_first(value: str) -> str:
    return value[:1].upper() + value[1:]


def _verdict_stamp(verdict: str, rng) -> Node:
    color = verdict_color(verdict)
    return view(
        merge(S.VERDICT_BIG_WRAPPER, {
            "borderColor": color,
            "rotate": -rng.randrange(*STAMP_ROTATION),
            "top": rng.randrange(*STAMP_TOP),
            "right": rng.randrange(*STAMP_RIGHT),
        }),
        text(merge(S.VERDICT_BIG, {"color": color}), verdict_short(verdict)),
    )


def _user_profile(user: User, avatar: bytes) -> Node:
    return view(
        S.USER_PROFILE,
        image(avatar, S.AVATAR),
        view(
            S.USER_INFO,
            text(S.FULL_NAME, full_name(user)),
            text(S.USER_ID, "ID: ", user.id),
            text(S.USERNAME, user.username and "@", user.username),
        ),
    )


def _summary(analytics: TrustAnalytics) -> Node:
    color = verdict_color(analytics.verdict)
    return view(
        S.TABLE,
        view(
            S.COL,
            text(S.SUMMARY_HEADER_CELL, "Verdict"),
            text(merge(S.SUMMARY_BODY_CELL, {"color": color}), verdict_short(analytics.verdict)),
        ),
        view(
            S.COL,
            text(S.SUMMARY_HEADER_CELL, "TrustFactor"),
            text(
                S.SUMMARY_BODY_CELL,
                analytics.trust_score, "+(", analytics.mod_trust_score, ")/", max_score(analytics.factors),
            ),
        ),
    )


def _factors(factors: Iterable[Factor]) -> Node:
    factors = list(factors)
    left = merge(S.FACTORS_BODY_CELL, S.ALIGN_LEFT)
    right_col = merge(S.FACTORS_COL, S.FACTORS_COL_RIGHT)
    return view(
        S.FACTORS_TABLE,
        view(
            S.FACTORS_COL,
            text(merge(S.FACTORS_HEADER_CELL, S.ALIGN_LEFT), "Sampler"),
            *[text(left, upper_first(f.sampler)) for f in factors],
        ),
        view(
            right_col,
            text(S.FACTORS_HEADER_CELL, "Score"),
            *[text(S.FACTORS_BODY_CELL, f.score) for f in factors],
        ),
        view(
            right_col,
            text(S.FACTORS_HEADER_CELL, "Max Score"),
            *[text(S.FACTORS_BODY_CELL, f.max_score) for f in factors],
        ),
    )


def _e_signature(analytics: TrustAnalytics, context: str, stamp_url: str) -> Node:
    issuer = analytics.issuer
    return view(
        S.E_SIG_WRAPPER,
        view(
            S.E_SIG,
            image(stamp_url, S.E_SIG_STAMP),
            view(
                S.E_SIG_DATA,
                text(S.E_SIG_TITLE, "Document is e-Signed with certificate:"),
                text(S.E_SIG_INFO, issuer.id),
                text(S.E_SIG_INFO, "Context: ", context),
                text(S.E_SIG_INFO, "Date: ", format_report_date(analytics.report_creation_date)),
                text(S.E_SIG_INFO, "Report ID: ", issuer.report_id),
            ),
        ),
    )


def compose_report(
    analytics: TrustAnalytics,
    user: User,
    avatar: bytes,
    context: str,
    *,
    logo_url: str,
    stamp_url: str,
    rng: Optional[random.Random] = None,
) -> Node:
    """Build the one-page report tree for ``user`` from ``analytics``.

    Only the stamp rotation and offsets depend on ``rng``; everything else
    is determined by the inputs.
    """
    rng = rng or random
    return document(
        page(
            S.PAGE,
            _verdict_stamp(analytics.verdict, rng),
            view(S.LOGO_WRAPPER, image(logo_url, S.LOGO)),
            _user_profile(user, avatar),
            text(S.SECTION_TITLE, "Summary"),
            _summary(analytics),
            text(S.SECTION_TITLE, "Factors"),
            _factors(analytics.factors),
            _e_signature(analytics, context or DEFAULT_CONTEXT, stamp_url),
        ),
    )
