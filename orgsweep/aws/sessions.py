"""AWS session management utilities."""

from typing import Optional

from boto3.session import Session
from mypy_boto3_sts.client import STSClient
from mypy_boto3_sts.type_defs import AssumeRoleResponseTypeDef, CredentialsTypeDef

from ..types import RoleCredentials


def organization_session(
    access_key_id: str,
    secret_access_key: str,
    region: Optional[str] = None
) -> Session:
    """Build a session from the organization's long-lived credentials."""
    return Session(
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
        region_name=region
    )


def session_from_role_credentials(credentials: RoleCredentials, region: Optional[str] = None) -> Session:
    """Build a session from credentials returned by assume_role."""
    return Session(
        aws_access_key_id=credentials.access_key_id,
        aws_secret_access_key=credentials.secret_access_key,
        aws_session_token=credentials.session_token,
        region_name=region
    )


def assume_role(
    role_arn: str,
    session_name: str,
    base_session: Session,
    duration_seconds: int = 900
) -> RoleCredentials:
    """
    Assume an IAM role and return its temporary credentials.

    Args:
        role_arn: ARN of the role to assume
        session_name: Name for the role session
        base_session: Session to use for assuming role
        duration_seconds: Lifetime of the temporary credentials

    Returns:
        RoleCredentials for the assumed role

    Raises:
        ClientError: If role assumption fails (AccessDenied, InvalidParameterValue, etc.)
    """
    sts: STSClient = base_session.client("sts")
    resp: AssumeRoleResponseTypeDef = sts.assume_role(
        RoleArn=role_arn,
        RoleSessionName=session_name,
        DurationSeconds=duration_seconds
    )

    creds: CredentialsTypeDef = resp["Credentials"]
    return RoleCredentials(
        access_key_id=creds["AccessKeyId"],
        secret_access_key=creds["SecretAccessKey"],
        session_token=creds["SessionToken"],
        expiration=creds.get("Expiration")
    )


def role_arn_for_account(account_id: str, role_name: str) -> str:
    return f"arn:aws:iam::{account_id}:role/{role_name}"
