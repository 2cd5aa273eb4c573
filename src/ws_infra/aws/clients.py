"""AWS client management."""
import boto3
import logging
from typing import Any, Optional
from ws_infra.settings import get_settings

logger = logging.getLogger(__name__)

class AWSClientManager:
    """Singleton manager for AWS service clients, cached per region."""
    _instance = None
    _clients = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(AWSClientManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize the client manager with settings."""
        self.settings = get_settings()

        logger.debug("Initializing AWSClientManager")
        logger.debug(f"  Default region: {self.settings.aws_region}")
        logger.debug(f"  Profile: {self.settings.aws_profile}")
        logger.debug(f"  Endpoint: {self.settings.aws_endpoint_url}")

    def get_client(self, service_name: str, region: Optional[str] = None) -> Any:
        """Get or create an AWS service client for a region."""
        region = region or self.settings.aws_region
        key = (service_name, region)
        if key in self._clients:
            return self._clients[key]

        client_kwargs = {'region_name': region}
        if self.settings.aws_endpoint_url:
            client_kwargs['endpoint_url'] = self.settings.aws_endpoint_url

        # Named profiles (SSO included) go through a session; otherwise the
        # default credential chain applies.
        if self.settings.aws_profile:
            session = boto3.Session(profile_name=self.settings.aws_profile)
            client = session.client(service_name, **client_kwargs)
            logger.debug(f"Created {service_name} client in {region} using profile: {self.settings.aws_profile}")
        else:
            client = boto3.client(service_name, **client_kwargs)
            logger.debug(f"Created {service_name} client in {region}")

        self._clients[key] = client
        return client

    def clear_clients(self):
        """Clear all cached clients."""
        self._clients.clear()
        logger.debug("Cleared all AWS clients")

    @classmethod
    def reset(cls):
        """Drop the singleton so the next use re-reads settings."""
        cls._clients.clear()
        cls._instance = None


def get_cloudformation_client(region: Optional[str] = None):
    """Get the CloudFormation client."""
    return AWSClientManager().get_client('cloudformation', region)
