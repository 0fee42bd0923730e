"""Folding ``oklch()`` colors into hex notation."""
from __future__ import annotations

import math
import re
from typing import Optional, Tuple

from distshrink.mangle.css import scan_css
from distshrink.tokens import TokenKind, join_tokens
from distshrink.utils.naming import byte_length

OKLCH_RE = re.compile(
    r"^([+-]?\d*\.?\d+%?)\s+([+-]?\d*\.?\d+)\s+([+-]?\d*\.?\d+)(deg|rad|turn|grad)?"
    r"(?:\s*/\s*([+-]?\d*\.?\d+%?))?$"
)
_OKLCH_CALL_RE = re.compile(r"(?<![\w-])oklch\(", re.IGNORECASE)

GAMUT_EPSILON = 1e-6

_HUE_TO_DEGREES = {
    "deg": lambda value: value,
    "turn": lambda value: value * 360,
    "grad": lambda value: value * 0.9,
    "rad": lambda value: value * 180 / math.pi,
}

Rgb = Tuple[float, float, float]


def parse_unit_interval(token: str, allow_bare_percent_scale: bool = False) -> Optional[float]:
    """Read a number or percentage that must land in ``[0, 1]``.

    With ``allow_bare_percent_scale`` a bare number between 1 and 100 is
    rejected instead of being read as a fraction, since it was most likely
    meant as a percentage.
    """
    if token.endswith("%"):
        value = float(token[:-1]) / 100
    else:
        value = float(token)
        if allow_bare_percent_scale and 1 < value <= 100:
            return None
    if value < 0 or value > 1:
        return None
    return value


def oklch_to_linear(l: float, c: float, h: float) -> Rgb:
    """Linear-light sRGB channels of an OKLCH color (hue in degrees), unclamped."""
    hue = math.radians(h)
    a = c * math.cos(hue)
    b = c * math.sin(hue)

    l_ = l + 0.3963377774 * a + 0.2158037573 * b
    m_ = l - 0.1055613458 * a - 0.0638541728 * b
    s_ = l - 0.0894841775 * a - 1.2914855480 * b

    l3, m3, s3 = l_ ** 3, m_ ** 3, s_ ** 3
    return (
        4.0767416621 * l3 - 3.3077115913 * m3 + 0.2309699292 * s3,
        -1.2684380046 * l3 + 2.6097574011 * m3 - 0.3413193965 * s3,
        -0.0041960863 * l3 - 0.7034186147 * m3 + 1.7076147010 * s3,
    )


def clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def linear_to_srgb(channel: float) -> float:
    if channel <= 0.0031308:
        return 12.92 * channel
    return 1.055 * channel ** (1 / 2.4) - 0.055


def srgb_to_linear(channel: float) -> float:
    if channel <= 0.04045:
        return channel / 12.92
    return ((channel + 0.055) / 1.055) ** 2.4


def oklch_to_srgb(l: float, c: float, h: float) -> Optional[Rgb]:
    """Gamma-encoded sRGB of an OKLCH color, or ``None`` when out of gamut."""
    linear = oklch_to_linear(l, c, h)
    if any(channel < -GAMUT_EPSILON or channel > 1 + GAMUT_EPSILON for channel in linear):
        return None
    return tuple(linear_to_srgb(clamp01(channel)) for channel in linear)


def to_byte(value: float) -> int:
    # round half up, not Python's round-half-even
    return math.floor(clamp01(value) * 255 + 0.5)


def to_hex(rgb: Rgb, alpha: float = 1.0) -> str:
    channels = [to_byte(value) for value in rgb]
    if alpha < 1:
        channels.append(to_byte(alpha))
    pairs = [f"{channel:02x}" for channel in channels]
    if all(pair[0] == pair[1] for pair in pairs):
        return "#" + "".join(pair[0] for pair in pairs)
    return "#" + "".join(pairs)


def convert(body: str) -> Optional[str]:
    """Hex form of the inside of one ``oklch()`` call, or ``None`` to abstain."""
    match = OKLCH_RE.match(body.strip())
    if match is None:
        return None
    l_token, c_token, h_token, h_unit, a_token = match.groups()
    l = parse_unit_interval(l_token, allow_bare_percent_scale=True)
    c = float(c_token)
    h = _HUE_TO_DEGREES[h_unit or "deg"](float(h_token))
    alpha = parse_unit_interval(a_token) if a_token else 1.0
    if l is None or alpha is None or c < 0:
        return None
    rgb = oklch_to_srgb(l, c, h)
    if rgb is None:
        return None
    return to_hex(rgb, alpha)


def fold_colors(text: str) -> str:
    out = []
    i = 0
    while True:
        match = _OKLCH_CALL_RE.search(text, i)
        if match is None:
            out.append(text[i:])
            break
        close = text.find(")", match.end())
        if close == -1:
            out.append(text[i:])
            break
        original = text[match.start():close + 1]
        # nested parentheses (var(), calc()) mean a dynamic color
        folded = None if "(" in text[match.end():close] else convert(text[match.end():close])
        out.append(text[i:match.start()])
        if folded is not None and byte_length(folded) < byte_length(original):
            out.append(folded)
        else:
            out.append(original)
        i = close + 1
    return "".join(out)


def fold_stylesheet(css: str) -> str:
    """Fold every in-gamut ``oklch()`` color of a stylesheet to hex."""
    if "oklch(" not in css.lower():
        return css
    tokens = [
        token._replace(text=fold_colors(token.text)) if token.kind is TokenKind.CODE else token
        for token in scan_css(css)
    ]
    return join_tokens(tokens)
