"""
Settings loading
"""

from pathlib import Path

from deckgen.core.config import AIConfig, AppConfig, load_settings


def test_defaults():
    ai_config = AIConfig(openai_api_key=None)
    app_config = AppConfig()

    assert ai_config.temperature == 0.7
    assert ai_config.max_tokens == 2000
    assert ai_config.image_size == "1024x1024"
    assert (ai_config.image_quality, ai_config.image_style) == ("hd", "natural")
    assert (ai_config.kids_image_quality, ai_config.kids_image_style) == ("standard", "vivid")
    assert (ai_config.max_retries, ai_config.retry_base_delay, ai_config.rate_limit_cooldown) == (3, 2.0, 60.0)
    assert not ai_config.is_configured()
    assert app_config.max_concurrency == 4
    assert (app_config.min_text_length, app_config.max_text_length) == (100, 50000)
    assert app_config.filter_image_prompts is False


def test_overrides_are_routed_to_the_declaring_config(tmp_path):
    ai_config, app_config = load_settings(
        openai_api_key="sk-test", max_concurrency=2, data_dir=str(tmp_path), unknown_option=1
    )

    assert ai_config.openai_api_key == "sk-test"
    assert ai_config.is_configured()
    assert app_config.max_concurrency == 2
    assert app_config.data_dir == Path(tmp_path)


def test_environment_variables_are_read(monkeypatch):
    monkeypatch.setenv("MAX_CONCURRENCY", "6")
    monkeypatch.setenv("RATE_LIMIT_COOLDOWN", "5")

    ai_config, app_config = load_settings()

    assert app_config.max_concurrency == 6
    assert ai_config.rate_limit_cooldown == 5.0
