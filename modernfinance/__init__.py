"""
Modern Finance cache and data-sourcing core.

Tagged Redis cache plus ordered provider fallback chains for market data
and multi-agent analysis. Start with ``ServiceContainer``:

```python
from modernfinance.container import ServiceContainer
from modernfinance.core.config import get_settings

async with ServiceContainer(get_settings()) as container:
    fundamentals = await container.market_service.get_fundamentals("AAPL")
```
"""

__version__ = "1.0.0"
