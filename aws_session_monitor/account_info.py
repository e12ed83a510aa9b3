"""Caller identity lookup for a profile."""

import logging

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    ProfileNotFound,
    SSOError,
    TokenRetrievalError,
)

logger = logging.getLogger(__name__)


def _identity_result(profile_name, status, account_id='N/A', arn='N/A', principal='N/A', principal_type='N/A'):
    return {
        'profile': profile_name,
        'account_id': account_id,
        'arn': arn,
        'principal': principal,
        'principal_type': principal_type,
        'status': status,
    }


def get_identity(profile_name):
    """
    Get the AWS identity a profile's credentials resolve to.

    Args:
        profile_name: Name of the AWS profile

    Returns:
        dict: profile, account_id, arn, principal, principal_type and status
    """
    try:
        session = boto3.Session(profile_name=profile_name)
        sts_client = session.client('sts')

        identity = sts_client.get_caller_identity()

        account_id = identity.get('Account', 'N/A')
        arn = identity.get('Arn', 'N/A')

        # Extract role or user name from ARN
        if ':assumed-role/' in arn:
            principal = arn.split('/')[1]
            principal_type = 'Role'
        elif ':user/' in arn:
            principal = arn.split('/')[-1]
            principal_type = 'User'
        else:
            principal = 'N/A'
            principal_type = 'Unknown'

        return _identity_result(profile_name, 'Active', account_id, arn, principal, principal_type)

    except ClientError as e:
        error_code = e.response['Error']['Code']
        logger.debug("get_caller_identity for %s failed: %s", profile_name, error_code)
        if error_code in ['ExpiredToken', 'InvalidClientTokenId']:
            return _identity_result(profile_name, 'Expired')
        return _identity_result(profile_name, f'Error: {error_code}')

    except (SSOError, TokenRetrievalError):
        return _identity_result(profile_name, 'Expired')

    except (NoCredentialsError, ProfileNotFound):
        return _identity_result(profile_name, 'No Credentials')

    except BotoCoreError as e:
        logger.debug("get_caller_identity for %s failed: %s", profile_name, e)
        return _identity_result(profile_name, f'Error: {str(e)[:30]}')
