"""
Custom exception hierarchy for boardviz.

## Exception Hierarchy

```
BoardVizError (base)
├── ConfigurationError
│   ├── ConfigFileInvalidError
│   └── ConfigValidationError
└── TakeLoadError
```

All custom exceptions inherit from `BoardVizError`, which provides:

- `user_message`: Human-friendly message for display to users
- `technical_message`: Detailed message for logging
- `recoverable`: Whether the error can be recovered from
- `recovery_hint`: Optional suggestion for how to fix the issue

Only take loading and file loading raise to the caller. Decode failures,
unmapped events, missing diagram elements and transport drops are handled
where they happen and logged.

### Example: Loading a take

```python
from boardviz.exceptions import TakeLoadError

try:
    recorder.load_take(text)
except TakeLoadError as e:
    print(e.get_full_message())
```
"""

from .base import BoardVizError
from .config import ConfigFileInvalidError, ConfigurationError, ConfigValidationError
from .handlers import ErrorContext, format_error_for_display, wrap_pydantic_error
from .take import TakeLoadError

__all__ = [
    # Base
    "BoardVizError",
    # Config
    "ConfigFileInvalidError",
    "ConfigValidationError",
    "ConfigurationError",
    # Take
    "TakeLoadError",
    # Handlers
    "ErrorContext",
    "format_error_for_display",
    "wrap_pydantic_error",
]
