"""
Tests for the settings module.
"""

import pytest
from pydantic import ValidationError

from chatrelay.core.config import DEFAULT_SYSTEM_PROMPT, Settings


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.openai_api_host == "https://api.openai.com"
        assert s.embedding_model == "text-embedding-ada-002"
        assert s.completion_max_tokens == 1000
        assert s.completion_temperature == 0.0
        assert s.retrieval_top_k == 3
        assert s.token_budgets == {"standard": 3000, "advanced": 6000}
        assert s.default_system_prompt == DEFAULT_SYSTEM_PROMPT

    def test_token_budget_for_known_tier(self):
        s = Settings(_env_file=None)
        assert s.token_budget_for("advanced") == 6000
        assert s.token_budget_for("standard") == 3000

    def test_token_budget_for_unknown_tier_uses_default(self):
        s = Settings(_env_file=None)
        assert s.token_budget_for("mystery") == 3000
        assert s.token_budget_for(None) == 3000

    def test_rejects_default_tier_without_budget(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_tier="premium")

    def test_budgets_from_env(self, monkeypatch):
        monkeypatch.setenv("TOKEN_BUDGETS", '{"small": 1000, "large": 8000}')
        monkeypatch.setenv("MODEL_TIERS", "{}")
        monkeypatch.setenv("DEFAULT_TIER", "small")
        s = Settings(_env_file=None)
        assert s.token_budget_for("large") == 8000
        assert s.token_budget_for("other") == 1000

    def test_secret_key_not_in_repr(self):
        s = Settings(_env_file=None, openai_api_key="sk-secret")
        assert "sk-secret" not in repr(s)

    def test_cors_origins(self):
        s = Settings(_env_file=None, allowed_origins="http://a.test, http://b.test")
        assert s.cors_origins == ["http://a.test", "http://b.test"]

    def test_rejects_zero_top_k(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, retrieval_top_k=0)

    def test_model_id_selects_tier_when_tier_missing(self):
        s = Settings(_env_file=None)
        assert s.token_budget_for(None, "gpt-4") == 6000
        assert s.token_budget_for("mystery", "gpt-4") == 6000
        assert s.token_budget_for(None, "gpt-3.5-turbo") == 3000

    def test_explicit_tier_beats_model_id(self):
        s = Settings(_env_file=None)
        assert s.token_budget_for("standard", "gpt-4") == 3000

    def test_rejects_model_tier_without_budget(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, model_tiers={"gpt-4": "premium"})
