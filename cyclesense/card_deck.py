"""
Default CycleSense deck
========================

Loaded into a fresh catalog when no cards exist yet.  Three color cards per
phase and six black cards.  Values are percentages with two decimals.

Columns: card number, title, card text, equity, debt, gold, cash
"""

from typing import List, Tuple

DeckRow = Tuple[str, str, str, str, str, str, str]


# ═══════════════════════════════════════════════════════════════
# COLOR CARDS
# ═══════════════════════════════════════════════════════════════

DEFAULT_COLOR_CARDS: List[DeckRow] = [
    # Green: bull market
    ("G1", "Bull Market Rally",
     "Markets surge on strong economic data. Equity markets hit all-time highs.",
     "15.00", "2.00", "-3.00", "1.00"),
    ("G2", "Tech Boom",
     "Technology sector leads market gains. Innovation drives investor confidence.",
     "12.00", "3.00", "-2.00", "1.50"),
    ("G3", "Economic Expansion",
     "GDP growth exceeds expectations. Consumer spending reaches record levels.",
     "10.00", "4.00", "0.00", "2.00"),

    # Blue: stable market
    ("B1", "Steady Growth",
     "Markets move sideways with balanced economic indicators.",
     "5.00", "4.00", "3.00", "2.50"),
    ("B2", "Policy Stability",
     "Central banks maintain status quo. Markets digest recent gains.",
     "6.00", "5.00", "2.00", "2.00"),
    ("B3", "Balanced Portfolio",
     "Diversification pays off as all asset classes show modest gains.",
     "4.00", "4.00", "4.00", "3.00"),

    # Orange: correction
    ("O1", "Market Volatility",
     "Uncertainty drives investors to safer assets. Equity markets face headwinds.",
     "-5.00", "3.00", "8.00", "2.00"),
    ("O2", "Profit Taking",
     "Investors book profits after prolonged rally. Defensive assets gain favor.",
     "-3.00", "4.00", "6.00", "2.50"),
    ("O3", "Trade Tensions",
     "Global trade concerns weigh on markets. Safe havens see inflows.",
     "-6.00", "2.00", "10.00", "3.00"),

    # Red: crisis
    ("R1", "Market Crash",
     "Panic selling grips markets. Flight to safety as fear dominates.",
     "-15.00", "-2.00", "15.00", "5.00"),
    ("R2", "Recession Alert",
     "Economic indicators point to downturn. Only cash and gold preserve value.",
     "-12.00", "-5.00", "12.00", "4.00"),
    ("R3", "Credit Crisis",
     "Debt markets freeze. Liquidity is king as all risky assets tumble.",
     "-18.00", "-8.00", "10.00", "6.00"),
]


# ═══════════════════════════════════════════════════════════════
# BLACK CARDS
# ═══════════════════════════════════════════════════════════════

DEFAULT_BLACK_CARDS: List[DeckRow] = [
    ("BC1", "Interest Rate Hike",
     "Central bank raises rates unexpectedly. Debt and equity markets react negatively.",
     "-3.00", "-4.00", "2.00", "3.00"),
    ("BC2", "Currency Devaluation",
     "Local currency weakens significantly. Gold and foreign cash holdings gain value.",
     "2.00", "-2.00", "8.00", "5.00"),
    ("BC3", "Corporate Scandal",
     "Major corporate fraud shakes investor confidence across equity markets.",
     "-6.00", "1.00", "3.00", "2.00"),
    ("BC4", "Commodity Boom",
     "Gold prices surge on supply concerns. Precious metals rally continues.",
     "1.00", "0.00", "12.00", "-1.00"),
    ("BC5", "Fiscal Stimulus",
     "Government announces massive spending package. Markets celebrate new liquidity.",
     "8.00", "3.00", "-2.00", "-1.00"),
    ("BC6", "Geopolitical Crisis",
     "International tensions escalate. Flight to quality dominates trading.",
     "-5.00", "2.00", "10.00", "4.00"),
]
