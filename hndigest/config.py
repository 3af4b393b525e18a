"""
Configuration management for HN Digest.
"""
import copy
import os
import json
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from dotenv import load_dotenv

ENV_PREFIX = 'HNDIGEST_'

# Default configuration
DEFAULT_CONFIG = {
    "scraper": {
        "top_url": "https://news.ycombinator.com",
        "front_url": "https://news.ycombinator.com/front",
        "max_front_pages": 10,
        "navigation_timeout": 30
    },
    "fetcher": {
        "navigation_timeout": 30,
        "request_delay": 1.0,
        "max_concurrent": 1,
        "dialog_wait": 1.0,
        "blocked_resource_types": ["image", "stylesheet", "font"]
    },
    "summarizer": {
        "model": "llama3.1",
        "base_url": "http://localhost:11434/v1",
        "api_key": "ollama",
        "min_content_length": 300,
        "max_content_length": 2000,
        "max_summary_length": 500,
        "temperature": 0.3,
        "top_p": 0.9,
        "request_timeout": 60,
        "max_retries": 3,
        "retry_base_delay": 2.0,
        "max_warmup_retries": 3
    },
    "workflow": {
        "max_top_pages": 2,
        "max_summarized_top": 30,
        "max_summarized_total": 40,
        "default_summary": None,
        "front_day": None
    },
    "database": {
        "path": "hndigest.db",
        "max_content_length": 45000
    },
    "github": {
        "token": None,
        "owner": "",
        "repo": "",
        "branch": "main",
        "commit_hash": None,
        "timeout": 10
    },
    "browser": {
        "headless": True,
        "user_agent": (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
        ),
        "args": [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu"
        ]
    }
}

# Variable names used by existing Ollama and GitHub deployments; values stay raw strings
ENV_ALIASES = {
    'OLLAMA_BASE_URL': 'summarizer.base_url',
    'OLLAMA_API_KEY': 'summarizer.api_key',
    'OLLAMA_MODEL': 'summarizer.model',
    'OLLAMA_MAX_CONTENT_LENGTH': 'summarizer.max_content_length',
    'OLLAMA_MAX_SUMMARY_LENGTH': 'summarizer.max_summary_length',
    'GH_TOKEN': 'github.token',
    'GITHUB_OWNER': 'github.owner',
    'GITHUB_REPO': 'github.repo',
    'GITHUB_BRANCH': 'github.branch',
    'COMMIT_HASH': 'github.commit_hash',
    'HNDIGEST_DB_PATH': 'database.path',
}


def _parse_env_value(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


class Config:
    """
    Configuration manager for HN Digest.
    """
    def __init__(self, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        """
        Initialize the Config.

        Args:
            config_path: Path to the configuration file
            environ: Environment mapping to read overrides from (defaults to os.environ)
        """
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self.config = self._load_config()

    def _load_config(self) -> Dict:
        """
        Load configuration from file or use defaults.

        Returns:
            Configuration dictionary
        """
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path:
            path = Path(self.config_path)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {path}")
            if path.suffix.lower() in ['.yaml', '.yml']:
                with open(path, 'r') as f:
                    user_config = yaml.safe_load(f) or {}
            elif path.suffix.lower() == '.json':
                with open(path, 'r') as f:
                    user_config = json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

            self._update_dict(config, user_config)

        self._override_from_aliases(config)
        self._override_from_env(config)

        return config

    def _update_dict(self, target: Dict, source: Dict) -> None:
        """
        Recursively update a dictionary.

        Args:
            target: Target dictionary to update
            source: Source dictionary with new values
        """
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._update_dict(target[key], value)
            else:
                target[key] = value

    def _set_path(self, config: Dict, parts, value: Any) -> None:
        current = config
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

    def _override_from_aliases(self, config: Dict) -> None:
        for env_name, key in ENV_ALIASES.items():
            value = self.environ.get(env_name)
            if value:
                self._set_path(config, key.split('.'), value)

    def _override_from_env(self, config: Dict, prefix: str = ENV_PREFIX) -> None:
        """
        Override configuration with environment variables.

        Nested keys are separated by a double underscore, so
        ``HNDIGEST_WORKFLOW__MAX_TOP_PAGES=3`` sets ``workflow.max_top_pages``.

        Args:
            config: Configuration dictionary to update
            prefix: Prefix for environment variables
        """
        for key, value in self.environ.items():
            if not key.startswith(prefix) or '__' not in key:
                continue
            parts = key[len(prefix):].lower().split('__')
            self._set_path(config, parts, _parse_env_value(value))

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Dot-separated key path (e.g., 'database.path')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        parts = key.split('.')
        current = self.config

        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]

        return current


@dataclass(frozen=True)
class ScraperSettings:
    top_url: str = DEFAULT_CONFIG['scraper']['top_url']
    front_url: str = DEFAULT_CONFIG['scraper']['front_url']
    max_front_pages: int = 10
    navigation_timeout: float = 30


@dataclass(frozen=True)
class FetcherSettings:
    navigation_timeout: float = 30
    request_delay: float = 1.0
    max_concurrent: int = 1
    dialog_wait: float = 1.0
    blocked_resource_types: Tuple[str, ...] = ('image', 'stylesheet', 'font')


@dataclass(frozen=True)
class SummarizerSettings:
    model: str = 'llama3.1'
    base_url: str = 'http://localhost:11434/v1'
    api_key: str = 'ollama'
    min_content_length: int = 300
    max_content_length: int = 2000
    max_summary_length: int = 500
    temperature: float = 0.3
    top_p: float = 0.9
    request_timeout: float = 60
    max_retries: int = 3
    retry_base_delay: float = 2.0
    max_warmup_retries: int = 3


@dataclass(frozen=True)
class WorkflowSettings:
    max_top_pages: int = 2
    max_front_pages: int = 10
    max_summarized_top: int = 30
    max_summarized_total: int = 40
    default_summary: Optional[str] = None
    front_day: Optional[str] = None


@dataclass(frozen=True)
class DatabaseSettings:
    path: str = 'hndigest.db'
    max_content_length: int = 45000


@dataclass(frozen=True)
class GitHubSettings:
    token: Optional[str] = None
    owner: str = ''
    repo: str = ''
    branch: str = 'main'
    commit_hash: Optional[str] = None
    timeout: float = 10


@dataclass(frozen=True)
class BrowserSettings:
    headless: bool = True
    user_agent: str = DEFAULT_CONFIG['browser']['user_agent']
    args: Tuple[str, ...] = tuple(DEFAULT_CONFIG['browser']['args'])


@dataclass(frozen=True)
class Settings:
    """
    Typed view of the configuration, handed to each component by its constructor.
    """
    scraper: ScraperSettings = field(default_factory=ScraperSettings)
    fetcher: FetcherSettings = field(default_factory=FetcherSettings)
    summarizer: SummarizerSettings = field(default_factory=SummarizerSettings)
    workflow: WorkflowSettings = field(default_factory=WorkflowSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    github: GitHubSettings = field(default_factory=GitHubSettings)
    browser: BrowserSettings = field(default_factory=BrowserSettings)

    @classmethod
    def from_config(cls, config: Config) -> 'Settings':
        """
        Build settings from a loaded Config.

        Args:
            config: The configuration manager

        Returns:
            Settings instance
        """
        scraper = config.get('scraper')
        fetcher = config.get('fetcher')
        summarizer = config.get('summarizer')
        workflow = config.get('workflow')
        database = config.get('database')
        github = config.get('github')
        browser = config.get('browser')

        return cls(
            scraper=ScraperSettings(
                top_url=scraper['top_url'],
                front_url=scraper['front_url'],
                max_front_pages=int(scraper['max_front_pages']),
                navigation_timeout=float(scraper['navigation_timeout']),
            ),
            fetcher=FetcherSettings(
                navigation_timeout=float(fetcher['navigation_timeout']),
                request_delay=float(fetcher['request_delay']),
                max_concurrent=max(1, int(fetcher['max_concurrent'])),
                dialog_wait=float(fetcher['dialog_wait']),
                blocked_resource_types=tuple(fetcher['blocked_resource_types']),
            ),
            summarizer=SummarizerSettings(
                model=str(summarizer['model']),
                base_url=summarizer['base_url'],
                api_key=summarizer['api_key'] or 'ollama',
                min_content_length=int(summarizer['min_content_length']),
                max_content_length=int(summarizer['max_content_length']),
                max_summary_length=int(summarizer['max_summary_length']),
                temperature=float(summarizer['temperature']),
                top_p=float(summarizer['top_p']),
                request_timeout=float(summarizer['request_timeout']),
                max_retries=int(summarizer['max_retries']),
                retry_base_delay=float(summarizer['retry_base_delay']),
                max_warmup_retries=int(summarizer['max_warmup_retries']),
            ),
            workflow=WorkflowSettings(
                max_top_pages=int(workflow['max_top_pages']),
                max_front_pages=int(scraper['max_front_pages']),
                max_summarized_top=int(workflow['max_summarized_top']),
                max_summarized_total=int(workflow['max_summarized_total']),
                default_summary=workflow.get('default_summary'),
                front_day=str(workflow['front_day']) if workflow.get('front_day') else None,
            ),
            database=DatabaseSettings(
                path=str(database['path']),
                max_content_length=int(database['max_content_length']),
            ),
            github=GitHubSettings(
                token=str(github['token']) if github.get('token') else None,
                owner=github.get('owner') or '',
                repo=github.get('repo') or '',
                branch=github.get('branch') or 'main',
                commit_hash=str(github['commit_hash']) if github.get('commit_hash') else None,
                timeout=float(github.get('timeout', 10)),
            ),
            browser=BrowserSettings(
                headless=bool(browser['headless']),
                user_agent=browser['user_agent'],
                args=tuple(browser['args']),
            ),
        )


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Load .env, read the configuration file and environment, and build Settings.

    Args:
        config_path: Optional path to a YAML or JSON configuration file

    Returns:
        Settings instance
    """
    load_dotenv()
    return Settings.from_config(Config(config_path or os.getenv('HNDIGEST_CONFIG_PATH')))
