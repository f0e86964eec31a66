from datetime import datetime

import pytest

from ducktape.config.manager import ConfigManager
from ducktape.nlp.pipeline import CommandEnhancementPipeline

# Wednesday
FIXED_NOW = datetime(2025, 3, 12, 9, 30)

CONFIG_ENV = {
    'TIMEZONE': 'America/Los_Angeles',
    'DEFAULT_CALENDAR': 'Calendar',
    'DEFAULT_REMINDER_LIST': 'Reminders',
    'DEFAULT_NOTE_FOLDER': 'Notes',
    'MAX_INPUT_LENGTH': '1000',
    'OPENAI_API_KEY': 'test-key',
    'OPENAI_MODEL': 'gpt-4o-mini',
    'OPENAI_TEMPERATURE': '0.3',
    'ENABLE_LLM': 'false',
    'RESPONSE_CACHE_SIZE': '100',
    'DEBUG': 'false',
    'LOG_LEVEL': 'INFO',
}


@pytest.fixture
def clean_env(monkeypatch):
    """Known config environment; anything a .env file loads is undone after the test"""
    for key, value in CONFIG_ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setattr("ducktape.config.manager.keyring.get_password", lambda service, key: None)
    return monkeypatch


@pytest.fixture
def config(clean_env, tmp_path):
    return ConfigManager(env_file=str(tmp_path / ".env"))


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def pipeline(clock):
    return CommandEnhancementPipeline(clock=clock)


@pytest.fixture
def enhance(pipeline):
    """Enhance a raw request the way offline parsing does"""
    def run(utterance):
        return pipeline.enhance(utterance, utterance=utterance)
    return run
