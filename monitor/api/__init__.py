"""Gateway and network API clients."""
from monitor.api.gateway import GatewayClient
from monitor.api.observer import ObserverClient
