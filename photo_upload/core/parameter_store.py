"""
AWS Systems Manager Parameter Store access.
Secrets are fetched once per process and cached.
"""
from functools import lru_cache

import boto3


@lru_cache(maxsize=10)
def get_parameter(parameter_name: str, region: str = "us-east-1") -> str:
    """
    Fetch a (possibly SecureString) parameter value.

    Args:
        parameter_name: Full parameter path, e.g. /photo-upload-api/dev/jwt-secret
        region: AWS region of the parameter

    Returns:
        Decrypted parameter value
    """
    ssm_client = boto3.client('ssm', region_name=region)
    parameter = ssm_client.get_parameter(Name=parameter_name, WithDecryption=True)['Parameter']
    return parameter['Value']
