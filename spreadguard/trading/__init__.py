"""
Broker-facing layer of the spread guard.

Components:
- Broker: Capability interface the guard calls through
- Position / PendingOrder: Snapshots returned by the broker
- ActionOutcome: Per-item result of a mutating broker call
- PaperBroker: In-memory broker for tests and scenario replay
"""

from spreadguard.trading.broker import (
    Broker,
    BrokerAction,
    ActionOutcome,
    Position,
    PendingOrder,
    PendingOrderType,
    TradeType,
    call_broker,
    snapshot,
)

from spreadguard.trading.paper_broker import (
    PaperBroker,
    PaperBrokerError,
    BrokerCall,
)

__all__ = [
    # Interface
    'Broker',
    'BrokerAction',
    'ActionOutcome',
    'Position',
    'PendingOrder',
    'PendingOrderType',
    'TradeType',
    'call_broker',
    'snapshot',
    # Paper broker
    'PaperBroker',
    'PaperBrokerError',
    'BrokerCall',
]
