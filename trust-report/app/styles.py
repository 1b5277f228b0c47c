from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from .nodes import style
from .schemas import TrustVerdict


FONT_PT_SANS = "PT Sans"
FONT_PT_SANS_NARROW = "PT Sans Narrow"
FONT_ROBOTO = "Roboto"
FONT_TINOS = "Tinos"

SIGNATURE_COLOR = "#4c40d2"
CONTENT_WIDTH = "13cm"

VERDICT_COLORS: Mapping[str, str] = MappingProxyType({
    TrustVerdict.AwfulStage.value: "red",
    TrustVerdict.BadStage.value: "darkred",
    TrustVerdict.LowerStage.value: "indianred",
    TrustVerdict.GoodStage.value: "yellow",
    TrustVerdict.PerfectStage.value: "lawngreen",
    TrustVerdict.VerifiedStage.value: "mediumpurple",
    TrustVerdict.CertifiedStage.value: "mediumpurple",
})


PAGE = style(backgroundColor="#ffffff", margin="1cm")
LOGO_WRAPPER = style(width=CONTENT_WIDTH, alignItems="center", marginBottom=10)
LOGO = style(width=140)

VERDICT_BIG_WRAPPER = style(position="absolute", borderWidth=3, paddingHorizontal=4)
VERDICT_BIG = style(fontSize=36, fontFamily=FONT_TINOS, textTransform="uppercase", fontWeight="bold")

USER_PROFILE = style(flexDirection="row", justifyContent="flex-start", marginBottom=32, marginTop=20)
AVATAR = style(width=56, height=56, borderRadius="50%", marginRight=12)
USER_INFO = style(height=56, justifyContent="space-evenly")
FULL_NAME = style(fontFamily=FONT_ROBOTO, fontSize=16, lineHeight=1)
USER_ID = style(fontFamily=FONT_PT_SANS, fontSize=14, lineHeight=1)
USERNAME = style(fontFamily=FONT_PT_SANS, fontSize=14, lineHeight=1)

SECTION_TITLE = style(
    fontFamily=FONT_PT_SANS, fontSize=20, lineHeight=1, fontWeight="bold",
    textAlign="center", width=CONTENT_WIDTH, marginBottom=14,
)
TABLE = style(flexDirection="row", justifyContent="space-evenly", width=CONTENT_WIDTH, marginBottom=24)
COL = style(alignItems="center")
SUMMARY_HEADER_CELL = style(fontFamily=FONT_PT_SANS, fontSize=14, lineHeight=1, marginBottom=6)
SUMMARY_BODY_CELL = style(fontFamily=FONT_PT_SANS, fontSize=18, lineHeight=1, fontWeight="bold")

FACTORS_TABLE = style(flexDirection="row", justifyContent="center", width=CONTENT_WIDTH, marginBottom=24)
FACTORS_COL = style(alignItems="center", paddingHorizontal=10)
FACTORS_COL_RIGHT = style(alignItems="flex-end")
FACTORS_HEADER_CELL = style(fontFamily=FONT_PT_SANS, fontSize=14, lineHeight=1, marginBottom=4, fontWeight="bold")
FACTORS_BODY_CELL = style(fontFamily=FONT_PT_SANS, fontSize=14, lineHeight=1, marginBottom=4)
ALIGN_LEFT = style(textAlign="left", alignSelf="flex-start")

E_SIG_WRAPPER = style(width=CONTENT_WIDTH, alignItems="center", marginTop=20)
E_SIG = style(
    borderWidth=2, borderColor=SIGNATURE_COLOR, borderRadius=10, width=230,
    padding=3, flexDirection="row", alignItems="center",
)
E_SIG_STAMP = style(width=40, marginRight=3, flexBasis=40)
E_SIG_DATA = style()
E_SIG_TITLE = style(fontFamily=FONT_PT_SANS_NARROW, color=SIGNATURE_COLOR, fontSize=12, lineHeight=1.1)
E_SIG_INFO = style(fontFamily=FONT_PT_SANS_NARROW, color=SIGNATURE_COLOR, fontSize=12, lineHeight=1.1)
