"""Shared DynamoDB utilities.

This package centralizes:
- boto3 client/resource configuration
- deadline-aware retry/backoff
- encrypted cursor pagination tokens
- typed errors, including per-item transaction cancellation reasons
- transactional write builders
"""
