"""
Channel package for MDM Submit: publishers for the downstream MDM pipeline.
"""

from mdm_submit.channel.publisher import (
    ChannelPublisher,
    InMemoryChannelPublisher,
    OutboxChannelPublisher,
)

__all__ = ["ChannelPublisher", "InMemoryChannelPublisher", "OutboxChannelPublisher"]
