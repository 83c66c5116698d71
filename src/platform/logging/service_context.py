"""
Service context extraction for log lines.

Identifies which process wrote a line, so logs from the API workers and the
background sweeper can be told apart once shipped to the collector.
"""

import os
from functools import lru_cache


@lru_cache(maxsize=1)
def get_service_context() -> str:
    service_name = os.getenv('SERVICE_NAME', 'checkout-service')
    deploy_env = os.getenv('DEPLOY_ENV', 'local_dev')

    # Container hosts expose a hostname per replica; fall back to the PID locally
    instance = os.getenv('HOSTNAME', '')[:12] or str(os.getpid())

    return f'{service_name}@{deploy_env}:{instance}'
