from app.optimizer.providers.base import MalformedEnvelope, ProviderAdapter
from app.optimizer.providers.registry import ProviderRegistry

__all__ = [
	"MalformedEnvelope",
	"ProviderAdapter",
	"ProviderRegistry",
]
