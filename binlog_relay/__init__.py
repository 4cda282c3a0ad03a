"""
Binlog Relay
============

Relays MySQL binlog change events to Kafka.

A capture dispatcher reads the replication stream and feeds an event handler;
the batching relay handler buffers row mutations and flushes them to the
broker on a fixed period.
"""

__version__ = "0.1.0"
