"""API Resilience Implementations.

Contains the circuit breaker, rate limiter, bulkhead and retry policies and
their composition into named policy groups.
Bounded Context: API Resilience
"""
