"""
Configuration module for the voice relay.

Key components:
- constants: Protocol event names, endpoints, defaults and timers shared by
  the client-facing and upstream-facing code.
- logging_config: Console and rotating-file logging plus the per-session
  logger adapter.
- presets: Named SessionConfig presets with their greeting instructions.
- settings: Environment-driven settings; OPENAI_API_KEY is required.

Usage examples:
```python
from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import get_settings

logger = configure_logging()
settings = get_settings()
logger.info(f"Using preset {settings.session_preset}")
```
"""
