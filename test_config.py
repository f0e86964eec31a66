from ducktape.config import manager
from ducktape.config.manager import ConfigManager
from ducktape.models.command import CommandFamily


def test_defaults(config):
    assert config.get('app.timezone') == 'America/Los_Angeles'
    assert config.get('app.max_input_length') == 1000
    assert config.get('openai.temperature') == 0.3
    assert config.get('features.enable_llm') is False
    assert config.get('features.missing', 'fallback') == 'fallback'
    assert config.get('app.timezone.deeper', 'fallback') == 'fallback'
    assert config.get_openai_key() == 'test-key'


def test_env_file_overrides(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("DEFAULT_CALENDAR=Work\nRESPONSE_CACHE_SIZE=5\n")
    config = ConfigManager(env_file=str(env_file))
    assert config.get('app.default_calendar') == 'Work'
    assert config.get('features.cache_size') == 5
    assert config.default_targets() == {
        CommandFamily.CALENDAR_CREATE: 'Work',
        CommandFamily.REMINDER_CREATE: 'Reminders',
        CommandFamily.NOTE_CREATE: 'Notes',
    }


def test_invalid_numbers_fall_back(clean_env, tmp_path):
    clean_env.setenv('MAX_INPUT_LENGTH', 'lots')
    clean_env.setenv('OPENAI_TEMPERATURE', 'warm')
    config = ConfigManager(env_file=str(tmp_path / ".env"))
    assert config.get('app.max_input_length') == 1000
    assert config.get('openai.temperature') == 0.3


def test_keyring_key(clean_env, tmp_path):
    clean_env.delenv('OPENAI_API_KEY')
    clean_env.setattr(manager.keyring, "get_password", lambda service, key: "sk-from-keyring")
    config = ConfigManager(env_file=str(tmp_path / ".env"))
    assert config.get_openai_key() == "sk-from-keyring"


def test_validate(clean_env, tmp_path):
    env_file = str(tmp_path / ".env")
    assert ConfigManager(env_file=env_file).validate()

    clean_env.setenv('ENABLE_LLM', 'true')
    assert ConfigManager(env_file=env_file).validate()

    clean_env.delenv('OPENAI_API_KEY')
    assert not ConfigManager(env_file=env_file).validate()

    clean_env.setenv('ENABLE_LLM', 'false')
    clean_env.setenv('RESPONSE_CACHE_SIZE', '0')
    assert not ConfigManager(env_file=env_file).validate()


def test_setup_wizard(clean_env, config):
    saved = {}
    clean_env.setattr(manager.Confirm, "ask", lambda prompt, **kwargs: True)
    clean_env.setattr(
        manager.Prompt, "ask",
        lambda prompt, **kwargs: "sk-secret" if kwargs.get("password") else kwargs.get("default"),
    )
    clean_env.setattr(
        manager.keyring, "set_password",
        lambda service, key, value: saved.update({(service, key): value}),
    )

    config.setup_wizard()

    assert saved == {('ducktape', 'openai_api_key'): 'sk-secret'}
    content = open(config.env_file).read()
    assert "ENABLE_LLM=true" in content
    assert "DEFAULT_CALENDAR=Calendar" in content
    assert "sk-secret" not in content
    assert config.get('features.enable_llm') is True
