#!/usr/bin/env python3
"""
Centralized Configuration Manager

Provides a single source of truth for pipeline configuration: storage
paths, board access, LLM access, analyzer storage limits, summarization
sampling, scheduler cadences and X posting credentials.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Tuple
from pathlib import Path

from core.env_loader import load_env_file

logger = logging.getLogger(__name__)

DEFAULT_TRACKED_TERMS = [
    'glowie', 'shill', 'fed', 'normie', 'boomer',
    'zoomer', 'doomer', 'incel', 'chud', 'groyper',
]

VIDEO_EXTENSIONS = ('.webm', '.mp4', '.mov', '.avi', '.wmv', '.flv')


@dataclass
class PathsConfig:
    """Locations of every persisted file, all under one data directory."""
    data_dir: Path
    
    @property
    def threads_dir(self) -> Path:
        return self.data_dir / 'threads'
    
    @property
    def analysis_dir(self) -> Path:
        return self.data_dir / 'analysis'
    
    @property
    def media_dir(self) -> Path:
        return self.data_dir / 'media' / 'OP'
    
    @property
    def summary_dir(self) -> Path:
        return self.data_dir / 'summaries'
    
    @property
    def summary_file(self) -> Path:
        return self.summary_dir / 'latest-summary.json'
    
    @property
    def big_picture_file(self) -> Path:
        return self.summary_dir / 'big-picture.json'
    
    @property
    def trends_file(self) -> Path:
        return self.summary_dir / 'trends.json'
    
    @property
    def progress_file(self) -> Path:
        return self.summary_dir / 'progress.json'
    
    @property
    def posted_file(self) -> Path:
        return self.data_dir / 'posted.json'


@dataclass
class BoardConfig:
    """Board API access and harvesting configuration."""
    api_base: str = "https://a.4cdn.org"
    media_base: str = "https://i.4cdn.org"
    board: str = "pol"
    top_by_replies: int = 20
    top_by_newest: int = 20
    request_timeout: int = 30
    courtesy_delay: Tuple[float, float] = (0.25, 0.75)
    rate_limit_backoff: Tuple[float, float] = (30.0, 40.0)
    max_rate_limit_retries: int = 5
    thread_retention_days: int = 1
    download_media: bool = True


@dataclass
class LLMConfig:
    """LLM completion service configuration."""
    api_key: Optional[str] = None
    base_url: str = "https://api.deepseek.com/v1"
    model: str = "deepseek-chat"
    temperature: float = 0.7
    max_tokens: int = 2000
    timeout: float = 120.0
    max_attempts: int = 3
    initial_backoff: float = 1.0
    debug_log_path: Optional[str] = None


@dataclass
class AnalyzerConfig:
    """Analyzer storage limits and analyzer-specific settings."""
    min_free_bytes: int = 100 * 1024 * 1024
    chunk_threshold_bytes: int = 50 * 1024 * 1024
    max_chunk_files: int = 10
    retention_days: int = 3
    tracked_terms: List[str] = field(default_factory=lambda: list(DEFAULT_TRACKED_TERMS))


@dataclass
class SummarizerConfig:
    """Thread selection and article generation settings."""
    required_threads: int = 12
    analysis_percentage: float = 30.0
    classification_batch_size: int = 20


@dataclass
class SchedulerConfig:
    """Recurring job cadences."""
    harvest_interval_hours: float = 3.0
    summarize_time: str = "23:30"
    timezone: str = "UTC"
    post_interval_hours: float = 4.0
    summarize_retry_delay_seconds: float = 15 * 60
    run_on_start: bool = False


@dataclass
class PosterConfig:
    """X posting credentials and formatting."""
    consumer_key: Optional[str] = None
    consumer_secret: Optional[str] = None
    access_token: Optional[str] = None
    access_token_secret: Optional[str] = None
    api_url: str = "https://api.twitter.com/2/tweets"
    thread_url_base: str = "https://4plebs.org/pol/thread/"
    suffix: str = " #4chan"
    max_length: int = 280
    url_length: int = 23
    window_seconds: int = 15 * 60
    posts_per_window: int = 50


@dataclass
class Config:
    """Master configuration container."""
    paths: PathsConfig
    board: BoardConfig
    llm: LLMConfig
    analyzers: AnalyzerConfig
    summarizer: SummarizerConfig
    scheduler: SchedulerConfig
    poster: PosterConfig
    
    log_level: str = "INFO"
    verbose_logging: bool = False
    environment: str = field(default_factory=lambda: os.getenv('ENVIRONMENT', 'development'))
    
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() in ['prod', 'production']
    
    def has_llm(self) -> bool:
        """Check if the LLM completion service is configured."""
        return bool(self.llm.api_key)
    
    def has_poster(self) -> bool:
        """Check if all four X OAuth1 credentials are present."""
        p = self.poster
        return all([p.consumer_key, p.consumer_secret, p.access_token, p.access_token_secret])


def _get_range(key: str, default: Tuple[float, float]) -> Tuple[float, float]:
    """Parse a 'low,high' pair from the environment."""
    raw = os.getenv(key)
    if not raw:
        return default
    low, _, high = raw.partition(',')
    return float(low), float(high or low)


def _get_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


class ConfigManager:
    """Manages application configuration with validation and environment loading."""
    
    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.
        
        Args:
            env_file_path: Path to .env file relative to project root
        """
        self._config: Optional[Config] = None
        load_env_file(env_file_path)
    
    def get_config(self, force_reload: bool = False) -> Config:
        """
        Get application configuration.
        
        Args:
            force_reload: Force reloading configuration from environment
            
        Returns:
            Complete configuration object
        """
        if self._config is None or force_reload:
            self._config = self._build_config()
        return self._config
    
    def _build_config(self) -> Config:
        """Build configuration from environment variables."""
        paths = PathsConfig(data_dir=Path(os.getenv('DATA_DIR', 'data')).resolve())
        
        board = BoardConfig(
            api_base=os.getenv('BOARD_API_BASE', 'https://a.4cdn.org').rstrip('/'),
            media_base=os.getenv('BOARD_MEDIA_BASE', 'https://i.4cdn.org').rstrip('/'),
            board=os.getenv('BOARD_NAME', 'pol'),
            top_by_replies=int(os.getenv('HARVEST_TOP_BY_REPLIES', '20')),
            top_by_newest=int(os.getenv('HARVEST_TOP_BY_NEWEST', '20')),
            request_timeout=int(os.getenv('BOARD_REQUEST_TIMEOUT', '30')),
            courtesy_delay=_get_range('BOARD_COURTESY_DELAY', (0.25, 0.75)),
            rate_limit_backoff=_get_range('BOARD_RATE_LIMIT_BACKOFF', (30.0, 40.0)),
            max_rate_limit_retries=int(os.getenv('BOARD_MAX_RATE_LIMIT_RETRIES', '5')),
            thread_retention_days=int(os.getenv('THREAD_RETENTION_DAYS', '1')),
            download_media=_get_bool('DOWNLOAD_MEDIA', True)
        )
        
        llm = LLMConfig(
            api_key=os.getenv('DEEPSEEK_API_KEY') or os.getenv('OPENAI_API_KEY'),
            base_url=os.getenv('LLM_BASE_URL', 'https://api.deepseek.com/v1'),
            model=os.getenv('LLM_MODEL', 'deepseek-chat'),
            temperature=float(os.getenv('DEEPSEEK_TEMPERATURE', '0.7')),
            max_tokens=int(os.getenv('LLM_MAX_TOKENS', '2000')),
            timeout=float(os.getenv('LLM_TIMEOUT', '120')),
            max_attempts=int(os.getenv('LLM_MAX_ATTEMPTS', '3')),
            initial_backoff=float(os.getenv('LLM_INITIAL_BACKOFF', '1.0')),
            debug_log_path=os.getenv('LLM_DEBUG_LOG')
        )
        
        terms_raw = os.getenv('TRACKED_TERMS')
        analyzers = AnalyzerConfig(
            min_free_bytes=int(os.getenv('ANALYZER_MIN_FREE_BYTES', str(100 * 1024 * 1024))),
            chunk_threshold_bytes=int(os.getenv('ANALYZER_CHUNK_THRESHOLD_BYTES', str(50 * 1024 * 1024))),
            max_chunk_files=int(os.getenv('ANALYZER_MAX_CHUNK_FILES', '10')),
            retention_days=int(os.getenv('ANALYZER_RETENTION_DAYS', '3')),
            tracked_terms=(
                [t.strip().lower() for t in terms_raw.split(',') if t.strip()]
                if terms_raw else list(DEFAULT_TRACKED_TERMS)
            )
        )
        
        summarizer = SummarizerConfig(
            required_threads=int(os.getenv('SUMMARY_REQUIRED_THREADS', '12')),
            analysis_percentage=float(os.getenv('SUMMARY_ANALYSIS_PERCENTAGE', '30')),
            classification_batch_size=int(os.getenv('SUMMARY_BATCH_SIZE', '20'))
        )
        
        scheduler = SchedulerConfig(
            harvest_interval_hours=float(os.getenv('HARVEST_INTERVAL_HOURS', '3')),
            summarize_time=os.getenv('SUMMARIZE_TIME', '23:30'),
            timezone=os.getenv('SCHEDULER_TIMEZONE', 'UTC'),
            post_interval_hours=float(os.getenv('POST_INTERVAL_HOURS', '4')),
            summarize_retry_delay_seconds=float(os.getenv('SUMMARIZE_RETRY_DELAY_SECONDS', '900')),
            run_on_start=_get_bool('RUN_ON_START', False)
        )
        
        poster = PosterConfig(
            consumer_key=os.getenv('X_API_KEY'),
            consumer_secret=os.getenv('X_API_SECRET'),
            access_token=os.getenv('X_ACCESS_TOKEN'),
            access_token_secret=os.getenv('X_ACCESS_TOKEN_SECRET'),
            thread_url_base=os.getenv('POST_THREAD_URL_BASE', 'https://4plebs.org/pol/thread/'),
            suffix=os.getenv('POST_SUFFIX', ' #4chan')
        )
        
        config = Config(
            paths=paths,
            board=board,
            llm=llm,
            analyzers=analyzers,
            summarizer=summarizer,
            scheduler=scheduler,
            poster=poster,
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            verbose_logging=_get_bool('VERBOSE_LOGGING', False)
        )
        
        self._validate_config(config)
        return config
    
    def _validate_config(self, config: Config) -> None:
        """Validate configuration values."""
        errors = []
        
        if config.board.top_by_replies < 1 or config.board.top_by_newest < 1:
            errors.append("HARVEST_TOP_BY_REPLIES and HARVEST_TOP_BY_NEWEST must be at least 1")
        
        for name, (low, high) in (('BOARD_COURTESY_DELAY', config.board.courtesy_delay),
                                  ('BOARD_RATE_LIMIT_BACKOFF', config.board.rate_limit_backoff)):
            if low < 0 or high < low:
                errors.append(f"{name} must be a non-negative 'low,high' range")
        
        if config.llm.max_attempts < 1:
            errors.append("LLM_MAX_ATTEMPTS must be at least 1")
        
        if not 0 <= config.llm.temperature <= 2:
            errors.append("DEEPSEEK_TEMPERATURE must be between 0 and 2")
        
        if config.analyzers.chunk_threshold_bytes < 1:
            errors.append("ANALYZER_CHUNK_THRESHOLD_BYTES must be positive")
        
        if config.analyzers.max_chunk_files < 1:
            errors.append("ANALYZER_MAX_CHUNK_FILES must be at least 1")
        
        if not config.analyzers.tracked_terms:
            errors.append("TRACKED_TERMS must name at least one term")
        
        if not 0 < config.summarizer.analysis_percentage <= 100:
            errors.append("SUMMARY_ANALYSIS_PERCENTAGE must be in (0, 100]")
        
        if config.summarizer.classification_batch_size < 1:
            errors.append("SUMMARY_BATCH_SIZE must be at least 1")
        
        hour, _, minute = config.scheduler.summarize_time.partition(':')
        if not (hour.isdigit() and minute.isdigit() and int(hour) < 24 and int(minute) < 60):
            errors.append("SUMMARIZE_TIME must be HH:MM")
        
        if config.scheduler.harvest_interval_hours <= 0 or config.scheduler.post_interval_hours <= 0:
            errors.append("HARVEST_INTERVAL_HOURS and POST_INTERVAL_HOURS must be positive")
        
        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if config.log_level not in valid_log_levels:
            errors.append(f"LOG_LEVEL must be one of: {', '.join(valid_log_levels)}")
        
        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")
        
        logger.debug("Configuration validation passed")
    
    def update_logging(self) -> None:
        """Configure logging based on current configuration."""
        config = self.get_config()
        
        numeric_level = getattr(logging, config.log_level)
        logging.getLogger().setLevel(numeric_level)
        
        if config.verbose_logging:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        else:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        
        for handler in logging.getLogger().handlers:
            handler.setLevel(numeric_level)
            handler.setFormatter(logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S'))
    
    def get_integration_status(self) -> Dict[str, bool]:
        """Get status of all integrations."""
        config = self.get_config()
        return {
            'llm': config.has_llm(),
            'x_poster': config.has_poster(),
            'media_download': config.board.download_media
        }


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> Config:
    """Get application configuration."""
    return get_config_manager().get_config()


def reset_config() -> None:
    """Reset configuration manager (useful for testing)."""
    global _config_manager
    _config_manager = None
