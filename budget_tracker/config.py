"""Domain configuration for the budget tracker.

Provides the default category list, keyword categorization rules and
payment methods, plus a helper to override them from a JSON file.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass
class CategorySeed:
    name: str
    is_income: bool = False
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


DEFAULT_CATEGORIES: List[CategorySeed] = [
    CategorySeed("Groceries", color="#10b981", icon="shopping-cart"),
    CategorySeed("Dining Out", color="#f59e0b", icon="utensils"),
    CategorySeed("Transportation", color="#3b82f6", icon="car"),
    CategorySeed("Utilities", color="#6366f1", icon="zap"),
    CategorySeed("Rent", color="#8b5cf6", icon="home"),
    CategorySeed("Shopping", color="#ec4899", icon="shopping-bag"),
    CategorySeed("Healthcare", color="#ef4444", icon="heart-pulse"),
    CategorySeed("Entertainment", color="#14b8a6", icon="film"),
    CategorySeed("Education", color="#0ea5e9", icon="book"),
    CategorySeed("Other", color="#64748b", icon="circle"),
    CategorySeed("Salary", is_income=True, color="#16a34a", icon="briefcase"),
    CategorySeed("Freelance", is_income=True, color="#22c55e", icon="laptop"),
    CategorySeed("Investments", is_income=True, color="#84cc16", icon="trending-up"),
    CategorySeed("Gifts", is_income=True, color="#eab308", icon="gift"),
    CategorySeed("Other Income", is_income=True, color="#64748b", icon="circle"),
]

# Keys: category names. Values: lowercase keywords searched in the description.
DEFAULT_RULES: Dict[str, List[str]] = {
    "Salary": ["salary", "payroll", "sweldo", "paycheck", "13th month"],
    "Freelance": ["freelance", "client payment", "commission", "upwork", "fiverr"],
    "Investments": ["dividend", "interest", "stocks", "mutual fund"],
    "Gifts": ["gift", "regalo", "birthday money"],
    "Groceries": ["grocery", "groceries", "supermarket", "puregold", "savemore", "sm market", "palengke"],
    "Dining Out": ["restaurant", "jollibee", "mcdonald", "starbucks", "coffee", "lunch", "dinner", "grabfood", "foodpanda"],
    "Transportation": ["grab", "angkas", "jeep", "taxi", "gas", "petron", "shell", "mrt", "lrt", "toll", "parking"],
    "Utilities": ["meralco", "electric", "water", "maynilad", "manila water", "internet", "pldt", "globe", "converge", "load"],
    "Rent": ["rent", "landlord", "upa"],
    "Shopping": ["lazada", "shopee", "mall", "clothes", "uniqlo"],
    "Healthcare": ["pharmacy", "mercury drug", "watsons", "doctor", "clinic", "hospital", "dentist"],
    "Entertainment": ["netflix", "spotify", "movie", "cinema", "concert", "games"],
    "Education": ["tuition", "school", "books", "course"],
}

PAYMENT_METHODS: List[str] = [
    "Cash",
    "Credit Card",
    "Debit Card",
    "Bank Transfer",
    "GCash",
    "PayMaya",
    "GrabPay",
    "Other",
]

PRIORITY_LABELS: Dict[int, str] = {1: "High", 2: "Medium", 3: "Low"}

DEFAULT_CURRENCY = "PHP"


@dataclass
class AppConfig:
    categories: List[CategorySeed] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    rules: Dict[str, List[str]] = field(default_factory=lambda: dict(DEFAULT_RULES))
    payment_methods: List[str] = field(default_factory=lambda: list(PAYMENT_METHODS))
    currency: str = DEFAULT_CURRENCY

    @staticmethod
    def load(config_path: Optional[str | Path] = None) -> "AppConfig":
        """Load config from JSON if provided, else use defaults.

        JSON format:
        {
          "categories": [{"name": "Groceries", "is_income": false, "color": "#10b981"}],
          "rules": {"Groceries": ["keyword1", "keyword2"]},
          "payment_methods": ["Cash", "GCash"],
          "currency": "PHP"
        }
        """

        cfg = AppConfig()
        if not config_path:
            return cfg
        p = Path(config_path)
        if not p.exists():
            return cfg
        with p.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            return cfg

        if isinstance(raw.get("categories"), list):
            cfg.categories = [
                CategorySeed(
                    name=str(c["name"]).strip(),
                    is_income=bool(c.get("is_income", False)),
                    description=c.get("description"),
                    color=c.get("color"),
                    icon=c.get("icon"),
                )
                for c in raw["categories"]
                if isinstance(c, dict) and str(c.get("name") or "").strip()
            ]
        if isinstance(raw.get("rules"), dict):
            # Normalize all keywords to lowercase
            cfg.rules = {
                str(cat): [str(k).lower() for k in (kw or [])]
                for cat, kw in raw["rules"].items()
            }
        if isinstance(raw.get("payment_methods"), list):
            cfg.payment_methods = [str(m) for m in raw["payment_methods"] if str(m).strip()]
        if raw.get("currency"):
            cfg.currency = str(raw["currency"]).upper()
        return cfg
