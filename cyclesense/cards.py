"""
Market Event Catalog
=====================

Color cards carry a return per asset class and belong to one of the four
market phases.  Black (shock) cards carry a modifier per asset class.

The catalog is read-only during play.  It grows only through bulk import,
which is append-only and all-or-nothing: a batch with one bad row adds
zero cards.

Import format (pasted from a spreadsheet, tab- or comma-separated):

    Card Number, Card Text, Equity, Debt, Gold, Cash [, Phase]

- A first row containing 3+ header keywords is skipped
- Blank lines are skipped
- Color card phase comes from the card-number prefix (G/B/O/R) unless an
  optional seventh "phase" column overrides it
- The card number doubles as the title
"""

import csv
import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from cyclesense.allocation import ReturnVector, to_decimal
from cyclesense.card_deck import DEFAULT_BLACK_CARDS, DEFAULT_COLOR_CARDS
from cyclesense.config import ASSETS, DEFAULT_IMPORT_PHASE, PHASE_BY_PREFIX, PHASES
from cyclesense.errors import CardImportError, CardNotFoundError, NoBlackCardsError

_log = logging.getLogger("cyclesense.cards")


def _new_id() -> str:
    return str(uuid.uuid4())


# ═══════════════════════════════════════════════════════════════
# CARDS
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ColorCard:
    """A market event.  ``returns`` are percentages per asset class."""
    card_number: str
    phase: str
    title: str
    card_text: str
    returns: ReturnVector
    image_url: Optional[str] = None
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "card_number": self.card_number,
            "phase": self.phase,
            "title": self.title,
            "card_text": self.card_text,
            "returns": self.returns.to_dict(),
            "image_url": self.image_url,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ColorCard":
        return cls(
            id=d["id"],
            card_number=d["card_number"],
            phase=d["phase"],
            title=d.get("title", d["card_number"]),
            card_text=d.get("card_text", ""),
            returns=ReturnVector.from_dict(d["returns"]),
            image_url=d.get("image_url"),
        )


@dataclass(frozen=True)
class BlackCard:
    """A shock.  ``modifiers`` are percentages per asset class."""
    card_number: str
    title: str
    card_text: str
    modifiers: ReturnVector
    image_url: Optional[str] = None
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "card_number": self.card_number,
            "title": self.title,
            "card_text": self.card_text,
            "modifiers": self.modifiers.to_dict(),
            "image_url": self.image_url,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "BlackCard":
        return cls(
            id=d["id"],
            card_number=d["card_number"],
            title=d.get("title", d["card_number"]),
            card_text=d.get("card_text", ""),
            modifiers=ReturnVector.from_dict(d["modifiers"]),
            image_url=d.get("image_url"),
        )


def phase_for_card_number(card_number: str) -> str:
    """G → green, B → blue, O → orange, R → red; anything else is green."""
    prefix = card_number[:1].upper()
    return PHASE_BY_PREFIX.get(prefix, DEFAULT_IMPORT_PHASE)


# ═══════════════════════════════════════════════════════════════
# TABULAR IMPORT
# ═══════════════════════════════════════════════════════════════

_COLOR_HEADER_KEYWORDS = ["card number", "card text", "equity", "debt", "gold", "cash", "return", "modifier"]
_BLACK_HEADER_KEYWORDS = ["card number", "card text", "equity", "debt", "gold", "cash", "modifier"]

_MIN_COLUMNS = 6


def _is_header(line: str, keywords: List[str]) -> bool:
    lowered = line.lower()
    return sum(1 for k in keywords if k in lowered) >= 3


def _split_row(line: str) -> List[str]:
    delimiter = "\t" if "\t" in line else ","
    return [part.strip() for part in next(csv.reader([line], delimiter=delimiter))]


def _parse_rows(text: str, keywords: List[str], value_label: str):
    """Yield (line_number, parts, values) for every data row in ``text``.

    Raises CardImportError on the first malformed row.
    """
    lines = (text or "").splitlines()
    first_data_seen = False
    rows = []
    for idx, raw in enumerate(lines):
        line_no = idx + 1
        line = raw.strip()
        if not line:
            continue
        if not first_data_seen:
            first_data_seen = True
            if _is_header(line, keywords):
                _log.debug(f"Skipping header row at line {line_no}")
                continue

        parts = _split_row(line)
        if len(parts) < _MIN_COLUMNS:
            raise CardImportError(
                line_no,
                f"has only {len(parts)} columns. Expected {_MIN_COLUMNS} columns: "
                f"Card Number, Card Text, Equity {value_label}, Debt {value_label}, "
                f"Gold {value_label}, Cash {value_label}",
            )
        if not parts[0]:
            raise CardImportError(line_no, "card number is empty", field="card_number")

        values = {}
        for asset, raw_value in zip(ASSETS, parts[2:6]):
            label = f"{asset.capitalize()} {value_label}"
            try:
                values[asset] = to_decimal(raw_value)
            except ValueError:
                raise CardImportError(
                    line_no, f'{label} "{raw_value}" is not a valid number', field=asset,
                )
        rows.append((line_no, parts, ReturnVector(**values)))

    if not rows:
        raise CardImportError(0, "No card data found")
    return rows


def parse_color_cards(text: str) -> List[ColorCard]:
    """Parse pasted rows into color cards without touching any catalog."""
    cards = []
    for line_no, parts, returns in _parse_rows(text, _COLOR_HEADER_KEYWORDS, "Return"):
        card_number = parts[0]
        phase = phase_for_card_number(card_number)
        if len(parts) > _MIN_COLUMNS and parts[_MIN_COLUMNS]:
            phase = parts[_MIN_COLUMNS].lower()
            if phase not in PHASES:
                raise CardImportError(
                    line_no, f'phase "{parts[_MIN_COLUMNS]}" must be one of {", ".join(PHASES)}',
                    field="phase",
                )
        cards.append(ColorCard(
            card_number=card_number,
            phase=phase,
            title=card_number,
            card_text=parts[1],
            returns=returns,
        ))
    return cards


def parse_black_cards(text: str) -> List[BlackCard]:
    cards = []
    for _, parts, modifiers in _parse_rows(text, _BLACK_HEADER_KEYWORDS, "Modifier"):
        cards.append(BlackCard(
            card_number=parts[0],
            title=parts[0],
            card_text=parts[1],
            modifiers=modifiers,
        ))
    return cards


# ═══════════════════════════════════════════════════════════════
# CATALOG
# ═══════════════════════════════════════════════════════════════

class CardCatalog:
    """Lookup structure for both card sets.  Insertion order is preserved."""

    def __init__(self):
        self._color: Dict[str, ColorCard] = {}
        self._black: Dict[str, BlackCard] = {}

    # ── Lookup ──

    def get_color_card(self, card_id: str) -> ColorCard:
        card = self._color.get(card_id)
        if card is None:
            raise CardNotFoundError(card_id, "color")
        return card

    def get_black_card(self, card_id: str) -> BlackCard:
        card = self._black.get(card_id)
        if card is None:
            raise CardNotFoundError(card_id, "black")
        return card

    def find_color_card(self, card_id: Optional[str]) -> Optional[ColorCard]:
        return self._color.get(card_id)

    def find_black_card(self, card_id: Optional[str]) -> Optional[BlackCard]:
        return self._black.get(card_id)

    def color_cards(self, phase: Optional[str] = None) -> List[ColorCard]:
        if phase is None:
            return list(self._color.values())
        return [c for c in self._color.values() if c.phase == phase]

    def black_cards(self) -> List[BlackCard]:
        return list(self._black.values())

    def random_black_card(self, rng: random.Random) -> BlackCard:
        cards = self.black_cards()
        if not cards:
            raise NoBlackCardsError()
        return rng.choice(cards)

    # ── Mutation (setup time only) ──

    def add_color_card(self, card: ColorCard) -> ColorCard:
        self._color[card.id] = card
        return card

    def add_black_card(self, card: BlackCard) -> BlackCard:
        self._black[card.id] = card
        return card

    def import_color_cards(self, text: str) -> List[ColorCard]:
        """Parse and append; raises CardImportError with nothing added."""
        cards = parse_color_cards(text)
        for card in cards:
            self.add_color_card(card)
        _log.info(f"Imported {len(cards)} color cards")
        return cards

    def import_black_cards(self, text: str) -> List[BlackCard]:
        cards = parse_black_cards(text)
        for card in cards:
            self.add_black_card(card)
        _log.info(f"Imported {len(cards)} black cards")
        return cards

    def clear_color_cards(self):
        self._color.clear()

    def clear_black_cards(self):
        self._black.clear()

    def clear(self):
        self.clear_color_cards()
        self.clear_black_cards()

    def load_default_deck(self):
        """Fill whichever card set is empty with the default deck."""
        if not self._color:
            for number, title, text, *values in DEFAULT_COLOR_CARDS:
                self.add_color_card(ColorCard(
                    card_number=number,
                    phase=phase_for_card_number(number),
                    title=title,
                    card_text=text,
                    returns=ReturnVector.of(*values),
                ))
            _log.info(f"Loaded {len(DEFAULT_COLOR_CARDS)} default color cards")
        if not self._black:
            for number, title, text, *values in DEFAULT_BLACK_CARDS:
                self.add_black_card(BlackCard(
                    card_number=number,
                    title=title,
                    card_text=text,
                    modifiers=ReturnVector.of(*values),
                ))
            _log.info(f"Loaded {len(DEFAULT_BLACK_CARDS)} default black cards")

    # ── Serialization ──

    def to_dict(self) -> dict:
        return {
            "color_cards": [c.to_dict() for c in self._color.values()],
            "black_cards": [c.to_dict() for c in self._black.values()],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "CardCatalog":
        catalog = cls()
        for c in d.get("color_cards", []):
            catalog.add_color_card(ColorCard.from_dict(c))
        for c in d.get("black_cards", []):
            catalog.add_black_card(BlackCard.from_dict(c))
        return catalog
