"""
Text extraction for GPU forum posts.

Everything here is pure: raw title/body text in, models, prices and
small classifications out. Nothing touches the browser or the store.
"""
import re
from typing import Iterable, List, NamedTuple, Optional, Pattern, Sequence, Set, Tuple

from .models import PriceInfo
from .utils import clean_text


EURO = "€"
MIN_EURO_PRICE = 50
MAX_EURO_PRICE = 5000
MIN_POST_BODY_LENGTH = 50


class GpuPattern(NamedTuple):
    """One row of the model recognition table."""
    pattern: Pattern
    vendor: str
    generation: str


def _gpu(prefix: str, number: str, suffixes: Optional[str] = None) -> Pattern:
    """Compile a prefix/number/suffix pattern with named groups."""
    rx = rf"\b(?P<prefix>{prefix})\s*(?P<number>{number})(?!\d)"
    if suffixes:
        rx += rf"(?:\s*(?P<suffix>{suffixes})\b)?"
    return re.compile(rx, re.I)


# Generation-bounded on purpose: a bare four-digit number is far more often
# a phone number, a post id or a year than a GPU.
GPU_PATTERNS: List[GpuPattern] = [
    GpuPattern(_gpu("RTX", r"50[5-9]0", "TI|SUPER"), "NVIDIA", "RTX 50"),
    GpuPattern(_gpu("RTX", r"40[5-9]0", "TI|SUPER"), "NVIDIA", "RTX 40"),
    GpuPattern(_gpu("RTX", r"30[5-9]0", "TI"), "NVIDIA", "RTX 30"),
    GpuPattern(_gpu("RTX", r"20[6-8]0", "TI|SUPER"), "NVIDIA", "RTX 20"),
    GpuPattern(_gpu("GTX", r"16[5-6]0", "TI|SUPER"), "NVIDIA", "GTX 16"),
    GpuPattern(_gpu("GTX", r"10[5-8]0", "TI"), "NVIDIA", "GTX 10"),
    GpuPattern(_gpu("GT", r"10[23]0"), "NVIDIA", "GT 10"),
    GpuPattern(_gpu("RX", r"90[5-9]0", "XTX|XT"), "AMD", "RX 9000"),
    GpuPattern(_gpu("RX", r"7[6-9]00", "XTX|XT|GRE"), "AMD", "RX 7000"),
    GpuPattern(_gpu("RX", r"6[4-9][05]0", "XT"), "AMD", "RX 6000"),
    GpuPattern(_gpu("RX", r"5[5-7]00", "XT"), "AMD", "RX 5000"),
    GpuPattern(_gpu("RX", r"4[78]0|5[5-9]0"), "AMD", "RX 400/500"),
    GpuPattern(_gpu("ARC", r"A\d{3}"), "Intel", "ARC A"),
]

# Looser single-match fallback for thread titles.
TITLE_PATTERNS: List[Pattern] = [
    _gpu("RTX", r"\d{4}", "TI|SUPER"),
    _gpu("GTX", r"\d{3,4}", "TI|SUPER"),
    _gpu("GT", r"10[23]0"),
    _gpu("RX", r"\d{3,4}", "XTX|XT|GRE"),
    _gpu("ARC", r"A\d{3,4}"),
]

_AMOUNT = r"(?P<amount>\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?|\d+(?:[.,]\d{1,2})?)"
_THOUSANDS = re.compile(r"\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?")

EURO_PATTERNS: List[Pattern] = [
    re.compile(rf"€\s*{_AMOUNT}"),
    re.compile(rf"(?<![\d.,]){_AMOUNT}\s*(?:€|eur[a-zõäöü]*)", re.I),
    re.compile(rf"\b(?:HIND|MÜÜK)\s*:?\s*{_AMOUNT}", re.I),
]
AH_PATTERN = re.compile(r"\bAH\s*:\s*(?P<amount>\d+)", re.I)
OK_PATTERN = re.compile(r"\bOK\s*:\s*(?P<amount>\d+)", re.I)

KNOWN_CITIES = [
    "Tallinn", "Tartu", "Narva", "Pärnu", "Kohtla-Järve",
    "Viljandi", "Rakvere", "Maardu", "Kuressaare", "Sillamäe",
    "Valga", "Võru", "Jõhvi", "Keila", "Haapsalu", "Paide",
]

_LOCATION_PREFIX = re.compile(r"^\s*asukoht\s*[:：]?\s*", re.I)
_LOCATION_SPLIT = re.compile(r"asukoht\s*[:：]?\s*", re.I)


def normalize_model(prefix: str, number: str, suffix: Optional[str] = None) -> str:
    """Uppercase and single-space the parts of a model name."""
    parts = [p for p in (prefix, number, suffix) if p]
    return " ".join(clean_text(p).upper() for p in parts)


def _model_from_match(m: re.Match) -> str:
    return normalize_model(m.group("prefix"), m.group("number"), m.groupdict().get("suffix"))


def extract_gpu_models(text: str) -> Set[str]:
    """Return every normalized GPU model mentioned in text."""
    found: Set[str] = set()
    if not text:
        return found
    for row in GPU_PATTERNS:
        for m in row.pattern.finditer(text):
            found.add(_model_from_match(m))
    return found


def extract_gpu_from_title(title: str) -> Optional[str]:
    """Return the first model-looking token in a thread title, if any."""
    if not title:
        return None
    for pattern in TITLE_PATTERNS:
        m = pattern.search(title)
        if m:
            return _model_from_match(m)
    return None


def _parse_amount(raw: str) -> Optional[float]:
    s = raw.strip()
    if _THOUSANDS.fullmatch(s):
        s = s.replace(".", "")
    s = s.replace(",", ".")
    try:
        return float(s)
    except ValueError:
        return None


def _first_euro_price(text: str) -> Optional[int]:
    """Earliest Euro amount in the text that passes the sanity bound."""
    candidates: List[Tuple[int, float]] = []
    for pattern in EURO_PATTERNS:
        for m in pattern.finditer(text):
            value = _parse_amount(m.group("amount"))
            if value is None:
                continue
            if MIN_EURO_PRICE <= value <= MAX_EURO_PRICE:
                candidates.append((m.start(), value))
    if not candidates:
        return None
    candidates.sort(key=lambda c: c[0])
    return round(candidates[0][1])


def _first_shorthand(pattern: Pattern, text: str) -> Optional[int]:
    m = pattern.search(text)
    if not m:
        return None
    return int(m.group("amount"))


def extract_all_prices(text: str) -> List[PriceInfo]:
    """
    Recognise the asking price of a post.

    Euro notation wins when present; AH (auction high bid) and OK (buy now)
    shorthands ride along as auxiliary fields. Without a Euro amount the
    shorthand itself becomes the price, AH before OK. At most one price
    is returned.
    """
    if not text:
        return []

    ah_price = _first_shorthand(AH_PATTERN, text)
    ok_price = _first_shorthand(OK_PATTERN, text)
    euro = _first_euro_price(text)

    if euro is not None:
        return [PriceInfo(price=euro, currency=EURO, ah_price=ah_price, ok_price=ok_price)]
    if ah_price is not None:
        return [PriceInfo(price=ah_price, currency="AH", ah_price=ah_price, ok_price=ok_price)]
    if ok_price is not None:
        return [PriceInfo(price=ok_price, currency="OK", ok_price=ok_price)]
    return []


def pair_models_with_prices(
    models: Iterable[str], prices: Sequence[PriceInfo]
) -> List[Tuple[str, PriceInfo]]:
    """
    Pair models with prices by position.

    Models beyond the number of prices reuse the last price. This is a
    best-effort heuristic for posts that list several cards.
    """
    ordered = sorted(models)
    if not ordered or not prices:
        return []
    last = len(prices) - 1
    return [(model, prices[min(i, last)]) for i, model in enumerate(ordered)]


def extract_gpu_offers(text: str) -> List[Tuple[str, PriceInfo]]:
    """Models found in text, each paired with a price."""
    return pair_models_with_prices(extract_gpu_models(text), extract_all_prices(text))


def detect_brand(model: Optional[str]) -> str:
    """Classify a model string by vendor."""
    if not model:
        return "Unknown"
    m = model.upper()
    tokens = m.split()
    if "RTX" in m or "GTX" in m or "GEFORCE" in m or (tokens and tokens[0] == "GT"):
        return "NVIDIA"
    if "RX" in m or "RADEON" in m:
        return "AMD"
    if "ARC" in m:
        return "Intel"
    return "Unknown"


def extract_location(text: str) -> Optional[str]:
    """First known city mentioned in text, title-cased."""
    if not text:
        return None
    folded = text.casefold()
    for city in KNOWN_CITIES:
        if city.casefold() in folded:
            return city.title()
    return None


def clean_location_hint(labels: Iterable[str], category: str = "") -> Optional[str]:
    """
    Pick the seller location from the small labels printed next to a
    thread title on the listing page ("Asukoht: Tartu", "Videokaardid", ...).
    """
    for raw in labels:
        text = clean_text(raw)
        if not text or not (2 < len(text) < 30):
            continue
        if category and category in text:
            continue
        if text.isdigit() or text == "i":
            continue
        if any(marker in text for marker in ("class", "span", "{")):
            continue

        text = _LOCATION_PREFIX.sub("", text).lstrip(":：").strip()
        if "asukoht" in text.lower():
            text = _LOCATION_SPLIT.split(text)[-1].strip()

        if 2 < len(text) < 30 and ":" not in text and "：" not in text and not text.isdigit():
            return text
    return None


def select_post_body(texts: Sequence[str], min_length: int = MIN_POST_BODY_LENGTH) -> str:
    """
    Choose the post body among texts returned by successive selectors.

    The first text longer than ``min_length`` wins; otherwise the non-empty
    attempts are joined.
    """
    attempts = [clean_text(t) for t in texts if clean_text(t)]
    for text in attempts:
        if len(text) > min_length:
            return text
    return " ".join(attempts)


def detect_condition(text: str) -> str:
    """Rough item condition from Estonian/English keywords."""
    t = (text or "").lower()
    if "vähe kasutatud" in t or "nagu uus" in t or "like new" in t:
        return "like-new"
    if re.search(r"\b(uus|new|avamata)\b", t):
        return "new"
    if "korras" in t:
        return "good"
    if "kasutatud" in t or re.search(r"\bused\b", t):
        return "used"
    return "unknown"


def detect_warranty(text: str) -> str:
    """Warranty mention and duration, if stated."""
    t = (text or "").lower()
    if "garantii" not in t and "warranty" not in t:
        return "unknown"
    m = re.search(r"(\d+)\s*(kuu|aasta|months?|years?)", t)
    if not m:
        return "yes"
    duration, unit = m.group(1), m.group(2)
    if unit.startswith("aasta") or unit.startswith("year"):
        return f"{duration} year(s)"
    return f"{duration} month(s)"
