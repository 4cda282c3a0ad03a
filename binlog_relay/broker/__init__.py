"""
Broker clients for delivering relay batches.

Backends: Kafka (kafka-python), structlog, in-memory (tests) and no-op.
"""
