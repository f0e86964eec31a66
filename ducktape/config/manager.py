from typing import Optional, Dict, Any
import os
from dotenv import load_dotenv
from rich.console import Console
from rich.prompt import Prompt, Confirm
import keyring
from keyring.errors import KeyringError
import logging

from ..models.command import CommandFamily

logger = logging.getLogger(__name__)

console = Console()

KEYRING_SERVICE = 'ducktape'


class ConfigManager:
    """Manage application configuration and environment variables"""

    def __init__(self, env_file: str = None):
        """Initialize config manager"""
        self.env_file = env_file or os.path.join(os.getcwd(), '.env')
        logger.debug(f"Looking for .env file at: {self.env_file}")

        self.config = {}
        self.load_config()

    def load_config(self):
        """Load configuration from environment and .env file"""
        if os.path.exists(self.env_file):
            logger.info(f"Loading environment variables from {self.env_file}")
            load_dotenv(self.env_file, override=True)

        self.config['app'] = self._load_app_config()
        self.config['openai'] = self._load_openai_config()
        self.config['features'] = self._load_feature_config()
        self.config['development'] = self._load_dev_config()

    def _load_app_config(self) -> Dict[str, Any]:
        """Load application settings"""
        return {
            'timezone': os.getenv('TIMEZONE', 'America/Los_Angeles'),
            'default_calendar': os.getenv('DEFAULT_CALENDAR', 'Calendar'),
            'default_reminder_list': os.getenv('DEFAULT_REMINDER_LIST', 'Reminders'),
            'default_note_folder': os.getenv('DEFAULT_NOTE_FOLDER', 'Notes'),
            'max_input_length': self._parse_int('MAX_INPUT_LENGTH', 1000),
        }

    def _load_openai_config(self) -> Dict[str, Any]:
        """Load OpenAI configuration"""
        return {
            'api_key': os.getenv('OPENAI_API_KEY') or self._get_secret('openai_api_key'),
            'model': os.getenv('OPENAI_MODEL', 'gpt-4o-mini'),
            'temperature': self._parse_float('OPENAI_TEMPERATURE', 0.3),
            'max_tokens': 150,
        }

    def _load_feature_config(self) -> Dict[str, Any]:
        """Load feature flags"""
        return {
            'enable_llm': self._parse_bool(os.getenv('ENABLE_LLM', 'true')),
            'cache_size': self._parse_int('RESPONSE_CACHE_SIZE', 100),
        }

    def _load_dev_config(self) -> Dict[str, Any]:
        """Load development settings"""
        return {
            'debug': self._parse_bool(os.getenv('DEBUG', 'false')),
            'log_level': os.getenv('LOG_LEVEL', 'INFO').upper()
        }

    def _parse_bool(self, value: str) -> bool:
        """Parse string boolean value"""
        return str(value).lower() in ('true', '1', 'yes', 'on')

    def _parse_int(self, name: str, default: int) -> int:
        value = os.getenv(name)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Invalid integer for {name}: {value!r}, using {default}")
            return default

    def _parse_float(self, name: str, default: float) -> float:
        value = os.getenv(name)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning(f"Invalid number for {name}: {value!r}, using {default}")
            return default

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value"""
        parts = key.split('.')
        value = self.config
        for part in parts:
            if isinstance(value, dict):
                value = value.get(part)
            else:
                return default
        return value if value is not None else default

    def validate(self) -> bool:
        """Validate required configuration"""
        required = {}
        if self.get('features.enable_llm'):
            required['openai.api_key'] = 'OpenAI API key is required while ENABLE_LLM is on'

        missing = []
        for key, message in required.items():
            if not self.get(key):
                missing.append(f"- {key}: {message}")

        if self.get('app.max_input_length', 0) < 1:
            missing.append("- app.max_input_length: must be a positive number")
        if self.get('features.cache_size', 0) < 1:
            missing.append("- features.cache_size: must be a positive number")

        if missing:
            console.print("[bold red]Missing Required Configuration:[/bold red]")
            for msg in missing:
                console.print(msg)
            return False

        return True

    def setup_wizard(self):
        """Interactive setup wizard for configuration"""
        console.print("[bold blue]Ducktape Setup Wizard[/bold blue]")
        console.print("This wizard will help you set up your ducktape configuration.\n")

        console.print("\n[bold cyan]OpenAI Configuration[/bold cyan]")
        use_llm = Confirm.ask("Use OpenAI to draft commands?", default=True)
        if use_llm:
            api_key = Prompt.ask("Enter your OpenAI API key", password=True)
            if api_key:
                self._save_secret('openai_api_key', api_key)

        console.print("\n[bold cyan]Defaults[/bold cyan]")
        settings = {
            'TIMEZONE': Prompt.ask("Timezone", default=self.get('app.timezone')),
            'DEFAULT_CALENDAR': Prompt.ask("Default calendar", default=self.get('app.default_calendar')),
            'DEFAULT_REMINDER_LIST': Prompt.ask("Default reminder list", default=self.get('app.default_reminder_list')),
            'DEFAULT_NOTE_FOLDER': Prompt.ask("Default note folder", default=self.get('app.default_note_folder')),
            'ENABLE_LLM': 'true' if use_llm else 'false',
        }

        # Non-sensitive settings only; the API key stays in the keyring
        self._create_env_file(settings)

        self.load_config()

        console.print("\n[bold green]Setup complete! Configuration has been saved.[/bold green]")

    def _save_secret(self, key: str, value: str):
        """Save secret to system keyring"""
        if value:
            keyring.set_password(KEYRING_SERVICE, key, value)

    def _get_secret(self, key: str) -> Optional[str]:
        """Get secret from system keyring"""
        try:
            return keyring.get_password(KEYRING_SERVICE, key)
        except KeyringError as e:
            logger.debug(f"Keyring unavailable: {e}")
            return None

    def _create_env_file(self, settings: Dict[str, str] = None):
        """Create .env file with non-sensitive settings"""
        values = {
            'TIMEZONE': self.get('app.timezone'),
            'DEFAULT_CALENDAR': self.get('app.default_calendar'),
            'DEFAULT_REMINDER_LIST': self.get('app.default_reminder_list'),
            'DEFAULT_NOTE_FOLDER': self.get('app.default_note_folder'),
            'MAX_INPUT_LENGTH': self.get('app.max_input_length'),
            'OPENAI_MODEL': self.get('openai.model'),
            'ENABLE_LLM': 'true' if self.get('features.enable_llm') else 'false',
            'RESPONSE_CACHE_SIZE': self.get('features.cache_size'),
            'DEBUG': 'true' if self.get('development.debug') else 'false',
            'LOG_LEVEL': self.get('development.log_level'),
        }
        values.update(settings or {})

        env_content = f"""# Application Settings
TIMEZONE={values['TIMEZONE']}
DEFAULT_CALENDAR={values['DEFAULT_CALENDAR']}
DEFAULT_REMINDER_LIST={values['DEFAULT_REMINDER_LIST']}
DEFAULT_NOTE_FOLDER={values['DEFAULT_NOTE_FOLDER']}
MAX_INPUT_LENGTH={values['MAX_INPUT_LENGTH']}

# OpenAI
OPENAI_MODEL={values['OPENAI_MODEL']}

# Optional Features
ENABLE_LLM={values['ENABLE_LLM']}
RESPONSE_CACHE_SIZE={values['RESPONSE_CACHE_SIZE']}

# Development Settings
DEBUG={values['DEBUG']}
LOG_LEVEL={values['LOG_LEVEL']}
"""

        with open(self.env_file, 'w') as f:
            f.write(env_content)

    def get_openai_key(self) -> Optional[str]:
        """Get OpenAI API key"""
        return self.get('openai.api_key')

    def default_targets(self) -> Dict[CommandFamily, str]:
        """Calendar, reminder list and note folder used when a request names none"""
        return {
            CommandFamily.CALENDAR_CREATE: self.get('app.default_calendar'),
            CommandFamily.REMINDER_CREATE: self.get('app.default_reminder_list'),
            CommandFamily.NOTE_CREATE: self.get('app.default_note_folder'),
        }
