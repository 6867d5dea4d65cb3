"""
Configuration subsystem.

- **config.py**: static configuration from environment variables (.env aware)
- **manager.py**: game balance configuration (built-in defaults, YAML files,
  runtime overrides)

Only the static layer is re-exported here; the logging subsystem reads it at
import time, while ConfigManager itself logs. Import the manager from
`src.core.config.manager`.

Usage
-----
```python
from src.core.config import Config
from src.core.config.manager import ConfigManager

backend = Config.STORE_BACKEND
chance = ConfigManager.get("packs.high_tier.chance", 0.10)
```
"""

from src.core.config.config import Config, Environment, StoreBackend

__all__ = [
    "Config",
    "Environment",
    "StoreBackend",
]
