from hint_engine.relay.bus import LocalRelayBus, RedisRelayBus, RelayBus, build_relay_bus
from hint_engine.relay.mirror import ConsoleMirror

__all__ = ["ConsoleMirror", "LocalRelayBus", "RedisRelayBus", "RelayBus", "build_relay_bus"]
