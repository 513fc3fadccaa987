"""
Receipt text parser.

Turns raw OCR text from an order-summary screenshot into one ExtractedFields
record per product. Screenshots list each product as a block of labelled
fields ("Price: ¥12.50  Freight: ¥3.00  Quantity: 2  Weight: 45g") in no fixed
order, often with several products per image and with OCR noise mangling
the labels.

Every price label followed by a number is an anchor. An anchor owns the text
from its own offset up to the next anchor; the last anchor gets a fixed
lookahead instead. Freight, quantity and weight are searched inside that
window and the candidate nearest the anchor wins, so fields of adjacent
products do not leak into each other. Identical products matched twice are
collapsed.

Nothing in here raises on bad input. Missing fields fall back to defaults,
out-of-range numbers are dropped, and text without any price anchor yields
an empty list. Pass a ``trace`` callable to observe what the parser did.
"""
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple

TraceSink = Callable[[str, Dict[str, Any]], None]

MAX_PRICE = 10_000.0
MAX_FREIGHT = 10_000.0
MAX_QUANTITY = 1000
MAX_WEIGHT_G = 100_000.0

# Window sizing, in characters of normalised text
LAST_WINDOW_LOOKAHEAD = 800
TAIL_BUFFER = 50

PRICE_TOLERANCE = 0.01
WEIGHT_TOLERANCE = 1.0

_WHITESPACE_RE = re.compile(r"\s+")

# "1,299.00" is a thousands separator; otherwise a comma is a decimal separator
_NUMBER = r"(\d{1,3}(?:,\d{3})+\.\d+|\d+(?:[.,]\d+)?)"
_CURRENCY = r"(?:[¥￥]|cny|rmb)?"
_SEP = r"\s*[:：]?\s*"
# Not preceded by a letter. OCR often glues a label straight onto the previous
# value ("¥3.00Quantity:2"), where \b would not match.
_LABEL_START = r"(?<![^\W\d_])"
_GRAM = r"(?:gramos?|grams?|gr|g)(?![^\W\d_])"

PRICE_RE = re.compile(
    r"(?<!shipping )(?<!freight )(?<!total )"
    + _LABEL_START + r"(?:unit\s?)?(?:pr[il1]ce|precio)" + _SEP + _CURRENCY + r"\s*" + _NUMBER,
    re.IGNORECASE,
)

FREIGHT_RE = re.compile(
    _LABEL_START + r"(?:fre[il1]ght|freigh|freig|frei|shipping(?:\s(?:fee|cost|price))?|env[ií]o|flete)"
    + _SEP + _CURRENCY + r"\s*" + _NUMBER,
    re.IGNORECASE,
)

# OCR regularly truncates "Quantity" down to a few letters
QUANTITY_RE = re.compile(
    _LABEL_START + r"(?:quantity|quantit|quanti|quant|quan|qnty|qty|quy|[o0]ty|cantidad|cant)"
    r"\s*[:：x×]?\s*(\d+)(?![.,]?\d)",
    re.IGNORECASE,
)

WEIGHT_LABELLED_RE = re.compile(
    _LABEL_START + r"(?:weight|we[l1]ght|weigh|peso)" + _SEP + _NUMBER + r"\s*" + _GRAM,
    re.IGNORECASE,
)

WEIGHT_BARE_RE = re.compile(r"(?<![\w.,])" + _NUMBER + r"\s*" + _GRAM, re.IGNORECASE)


@dataclass(frozen=True)
class ExtractedFields:
    """One product recovered from OCR text. Prices are in the source currency."""
    price: float
    freight: float = 0.0
    quantity: int = 1
    weight_g: float = 0.0
    name: str = ""


@dataclass(frozen=True)
class Anchor:
    start: int
    end: int
    price: float


@dataclass(frozen=True)
class Window:
    anchor: Anchor
    end: int
    # Bare "NNNg" weights at or after this offset belong to the next product
    tail_start: int


def _emit(trace: Optional[TraceSink], event: str, **data: Any) -> None:
    if trace is not None:
        trace(event, data)


def normalize_text(text: str) -> str:
    """Collapse whitespace so labels split across OCR lines still match."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def parse_number(raw: str) -> Optional[float]:
    if "," in raw and "." in raw:
        raw = raw.replace(",", "")
    else:
        raw = raw.replace(",", ".")
    try:
        return float(raw)
    except ValueError:
        return None


def find_anchors(text: str, trace: Optional[TraceSink] = None) -> List[Anchor]:
    """All plausible price anchors in ``text``, in offset order."""
    anchors = []
    for match in PRICE_RE.finditer(text):
        price = parse_number(match.group(1))
        if price is None or not 0 < price < MAX_PRICE:
            _emit(trace, "anchor_rejected", offset=match.start(), raw=match.group(1))
            continue
        anchors.append(Anchor(start=match.start(), end=match.end(), price=price))
        _emit(trace, "anchor", offset=match.start(), price=price)
    anchors.sort(key=lambda a: a.start)
    return anchors


def build_windows(anchors: List[Anchor], text_length: int) -> List[Window]:
    windows = []
    for index, anchor in enumerate(anchors):
        if index + 1 < len(anchors):
            end = anchors[index + 1].start
            tail_start = max(anchor.end, end - TAIL_BUFFER)
        else:
            end = min(text_length, anchor.start + LAST_WINDOW_LOOKAHEAD)
            tail_start = end
        windows.append(Window(anchor=anchor, end=max(end, anchor.end), tail_start=tail_start))
    return windows


def _candidates(
    pattern: Pattern,
    text: str,
    window: Window,
    convert: Callable[[str], Optional[float]],
    accept: Callable[[float], bool],
) -> List[Tuple[int, float]]:
    found = []
    for match in pattern.finditer(text, window.anchor.start, window.end):
        value = convert(match.group(1))
        if value is None or not accept(value):
            continue
        found.append((match.start(), value))
    return found


def _nearest(candidates: List[Tuple[int, float]], anchor: Anchor) -> Optional[Tuple[int, float]]:
    if not candidates:
        return None
    return min(candidates, key=lambda c: (abs(c[0] - anchor.start), c[0]))


def _parse_int(raw: str) -> Optional[int]:
    try:
        return int(raw)
    except ValueError:
        return None


def extract_freight(text: str, window: Window, trace: Optional[TraceSink] = None) -> float:
    candidates = _candidates(FREIGHT_RE, text, window, parse_number, lambda v: 0 <= v < MAX_FREIGHT)
    best = _nearest(candidates, window.anchor)
    if best is None:
        _emit(trace, "field_missing", field="freight", anchor=window.anchor.start, default=0.0)
        return 0.0
    _emit(trace, "field", field="freight", anchor=window.anchor.start, offset=best[0], value=best[1])
    return best[1]


def extract_quantity(text: str, window: Window, trace: Optional[TraceSink] = None) -> int:
    candidates = _candidates(QUANTITY_RE, text, window, _parse_int, lambda v: 1 <= v < MAX_QUANTITY)
    best = _nearest(candidates, window.anchor)
    if best is None:
        _emit(trace, "field_missing", field="quantity", anchor=window.anchor.start, default=1)
        return 1
    _emit(trace, "field", field="quantity", anchor=window.anchor.start, offset=best[0], value=best[1])
    return int(best[1])


def extract_weight(text: str, window: Window, trace: Optional[TraceSink] = None) -> float:
    def in_range(value: float) -> bool:
        return 0 < value < MAX_WEIGHT_G

    candidates = _candidates(WEIGHT_LABELLED_RE, text, window, parse_number, in_range)
    if not candidates:
        candidates = [
            c for c in _candidates(WEIGHT_BARE_RE, text, window, parse_number, in_range)
            if c[0] < window.tail_start
        ]
    best = _nearest(candidates, window.anchor)
    if best is None:
        _emit(trace, "field_missing", field="weight", anchor=window.anchor.start, default=0.0)
        return 0.0
    _emit(trace, "field", field="weight", anchor=window.anchor.start, offset=best[0], value=best[1])
    return best[1]


def is_duplicate(candidate: ExtractedFields, accepted: List[ExtractedFields]) -> bool:
    """Same product matched twice. Names are deliberately not compared."""
    for existing in accepted:
        if (
            abs(candidate.price - existing.price) < PRICE_TOLERANCE
            and abs(candidate.freight - existing.freight) < PRICE_TOLERANCE
            and candidate.quantity == existing.quantity
            and abs(candidate.weight_g - existing.weight_g) < WEIGHT_TOLERANCE
        ):
            return True
    return False


def extract_products(raw_text: str, trace: Optional[TraceSink] = None) -> List[ExtractedFields]:
    """
    Extract every product found in raw OCR text.

    :param raw_text: text as returned by the OCR service
    :param trace: optional ``trace(event, data)`` sink for diagnostics
    :return: products in the order their price labels appear; empty when
        no price label could be found
    """
    if not isinstance(raw_text, str) or not raw_text.strip():
        _emit(trace, "no_anchors", length=0)
        return []

    text = normalize_text(raw_text)
    anchors = find_anchors(text, trace)
    if not anchors:
        _emit(trace, "no_anchors", length=len(text))
        return []

    products: List[ExtractedFields] = []
    for window in build_windows(anchors, len(text)):
        product = ExtractedFields(
            price=window.anchor.price,
            freight=extract_freight(text, window, trace),
            quantity=extract_quantity(text, window, trace),
            weight_g=extract_weight(text, window, trace),
        )
        if is_duplicate(product, products):
            _emit(trace, "duplicate", anchor=window.anchor.start, price=product.price)
            continue
        products.append(product)

    return products
