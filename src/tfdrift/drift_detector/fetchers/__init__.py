"""
AWS Resource Fetchers Package.

This package contains the live EC2 instance fetcher and the retry policy wrapped
around every AWS call it makes.
"""

from .ec2_instances_fetcher import EC2InstanceFetcher, convert_from_aws_instance
from .retry import RetryPolicy, is_retryable_error, retry_with_backoff

__all__ = [
    "EC2InstanceFetcher",
    "RetryPolicy",
    "convert_from_aws_instance",
    "is_retryable_error",
    "retry_with_backoff",
]
