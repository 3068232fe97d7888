from .remote_api_client import RemoteAPIClient, should_retry

__all__ = ["RemoteAPIClient", "should_retry"]
