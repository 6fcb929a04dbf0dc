"""Tests for JSON config loading and environment settings."""

import json

from budget_tracker.config import DEFAULT_CATEGORIES, PAYMENT_METHODS, AppConfig
from budget_tracker.settings import AppSettings, GeminiSettings


class TestAppConfig:
    def test_defaults(self):
        cfg = AppConfig.load(None)
        assert [c.name for c in cfg.categories] == [c.name for c in DEFAULT_CATEGORIES]
        assert cfg.payment_methods == PAYMENT_METHODS
        assert cfg.currency == "PHP"

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = AppConfig.load(tmp_path / "nope.json")
        assert len(cfg.categories) == len(DEFAULT_CATEGORIES)

    def test_overrides_from_json(self, tmp_path):
        path = tmp_path / "budget.json"
        path.write_text(
            json.dumps(
                {
                    "categories": [
                        {"name": "Pets", "color": "#fff"},
                        {"name": "Allowance", "is_income": True},
                        {"name": "   "},
                    ],
                    "rules": {"Pets": ["Vet", "PETCO"]},
                    "payment_methods": ["Cash", "GCash", ""],
                    "currency": "usd",
                }
            ),
            encoding="utf-8",
        )
        cfg = AppConfig.load(path)
        assert [(c.name, c.is_income) for c in cfg.categories] == [("Pets", False), ("Allowance", True)]
        assert cfg.rules == {"Pets": ["vet", "petco"]}
        assert cfg.payment_methods == ["Cash", "GCash"]
        assert cfg.currency == "USD"


class TestSettings:
    def test_legacy_postgres_scheme_is_rewritten(self):
        settings = AppSettings(database_url="postgres://u:p@db:5432/budget")
        assert settings.sqlalchemy_url == "postgresql://u:p@db:5432/budget"

    def test_sqlite_url_untouched(self):
        settings = AppSettings(database_url="sqlite:///budget.db")
        assert settings.sqlalchemy_url == "sqlite:///budget.db"

    def test_gemini_defaults(self):
        settings = GeminiSettings(api_key=None)
        assert settings.model_name
        assert 0.0 <= settings.temperature <= 1.0
