from __future__ import annotations

"""Built-in Lindström price list (valid from 1.5.2025).

Used when the price store is empty or ``PRICE_SOURCE=builtin``. Rental prices
are keyed by replacement frequency in weeks ("1".."4"); ``purchase`` is the
buy-out price which doubles as the replacement cost of a rented mat.
"""

from typing import Dict, List

FREQUENCIES = ("1", "2", "3", "4")

CATEGORY_LABELS: Dict[str, str] = {
    "poslovni": "Poslovni predpražnik",
    "ergonomski": "Ergonomski predpražnik",
    "zunanji": "Zunanji predpražnik",
    "design": "Design predpražnik",
}

# Custom dimensions: rental €/m² per frequency, split at 2 m².
SMALL_AREA_LIMIT_M2 = 2.0
CUSTOM_M2_PRICES: Dict[str, Dict[str, float]] = {
    "small": {"1": 9.23, "2": 5.69, "3": 4.33, "4": 4.07},
    "large": {"1": 6.66, "2": 4.17, "3": 3.59, "4": 3.17},
}

SPECIAL_SHAPE_MULTIPLIER = 1.5
DESIGN_PURCHASE_PRICE_PER_M2 = 165.0
OPTIBRUSH_SPECIAL_SHAPE_MULTIPLIER = 1.3


def _row(code: str, category: str, m2: float, dimensions: str, prices: List[float], purchase: float) -> Dict[str, object]:
    return {
        "code": code,
        "name": CATEGORY_LABELS[category],
        "category": category,
        "m2": m2,
        "dimensions": dimensions,
        "prices": dict(zip(FREQUENCIES, prices)),
        "purchase_price": purchase,
    }


PRICE_LIST: List[Dict[str, object]] = [
    _row("MBW0", "poslovni", 0.64, "85*75", [4.98, 2.87, 2.00, 1.72], 39.09),
    _row("MBW1", "poslovni", 1.28, "85*150", [6.80, 4.03, 2.85, 2.48], 75.33),
    _row("MBW2", "poslovni", 2.30, "115*200", [10.95, 6.30, 4.54, 3.68], 133.61),
    _row("MBW3", "poslovni", 2.76, "115*240", [15.11, 8.69, 6.27, 5.08], 159.00),
    _row("MBW4", "poslovni", 4.50, "150*300", [19.38, 10.75, 7.82, 6.51], 258.69),
    _row("ERM10R", "ergonomski", 0.46, "86*54", [6.01, 3.21, 2.86, 1.96], 44.15),
    _row("ERM11R", "ergonomski", 1.22, "86*142", [7.68, 4.68, 3.58, 3.08], 110.77),
    _row("ERM49R", "zunanji", 1.28, "85*150", [7.73, 4.37, 3.12, 2.72], 92.91),
    _row("ERM51R", "zunanji", 2.01, "115*175", [10.14, 5.80, 4.00, 3.54], 145.07),
    _row("DESIGN-60x85", "design", 0.48, "60*85", [6.73, 4.10, 3.07, 2.84], 46.05),
    _row("DESIGN-75x85", "design", 0.64, "75*85", [7.22, 4.50, 3.33, 3.10], 57.57),
    _row("DESIGN-85x115", "design", 0.98, "85*115", [8.53, 5.31, 4.03, 3.79], 88.27),
    _row("DESIGN-85x120", "design", 1.02, "85*120", [8.77, 5.42, 4.13, 3.87], 92.11),
    _row("DESIGN-85x150", "design", 1.28, "85*150", [10.00, 6.08, 4.65, 4.39], 115.13),
    _row("DESIGN-85x250", "design", 2.13, "85*250", [14.45, 9.09, 7.25, 6.53], 191.89),
    _row("DESIGN-85x300", "design", 2.55, "85*300", [15.95, 10.18, 8.10, 7.39], 230.27),
    _row("DESIGN-115x180", "design", 2.07, "115*180", [14.24, 8.94, 7.10, 6.42], 186.92),
    _row("DESIGN-115x200", "design", 2.30, "115*200", [15.65, 9.54, 7.55, 6.89], 207.69),
    _row("DESIGN-115x240", "design", 2.76, "115*240", [17.72, 11.21, 8.75, 8.08], 249.23),
    _row("DESIGN-115x250", "design", 2.88, "115*250", [18.00, 11.51, 8.99, 8.31], 259.61),
    _row("DESIGN-115x300", "design", 3.45, "115*300", [21.60, 13.00, 10.50, 9.47], 311.54),
    _row("DESIGN-150x200", "design", 3.00, "150*200", [18.65, 11.83, 9.30, 8.56], 270.90),
    _row("DESIGN-150x240", "design", 3.60, "150*240", [21.85, 13.39, 10.60, 9.78], 325.08),
    _row("DESIGN-150x250", "design", 3.75, "150*250", [22.75, 14.20, 11.62, 10.49], 338.63),
    _row("DESIGN-150x300", "design", 4.50, "150*300", [25.87, 16.49, 13.48, 12.01], 406.35),
    _row("DESIGN-200x200", "design", 4.00, "200*200", [26.26, 18.12, 12.60, 11.00], 361.20),
    _row("DESIGN-200x300", "design", 6.00, "200*300", [34.61, 27.01, 17.08, 15.04], 541.80),
    _row("DESIGN-100x100", "design", 1.00, "100*100", [9.37, 5.65, 4.41, 3.83], 90.30),
]
