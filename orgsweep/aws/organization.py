"""
AWS Organizations account listing.

Accounts are yielded in the order the Organizations API returns them; the
orchestrator relies on that order to truncate deterministically to the
tenant's quota.
"""

import logging
from typing import Iterator, List

from boto3.session import Session
from mypy_boto3_organizations.client import OrganizationsClient

from ..types import OrganizationAccount
from .helpers import paginate

# Set up logging
logger = logging.getLogger(__name__)


def list_organization_accounts(session: Session) -> Iterator[List[OrganizationAccount]]:
    """
    Yield pages of member accounts of the organization.

    Args:
        session: boto3 Session with organizations:ListAccounts permission

    Yields:
        One list of OrganizationAccount per API page

    Raises:
        ClientError: If the organization cannot be listed
    """
    org_client: OrganizationsClient = session.client("organizations")
    page_number = 0
    for page in paginate(org_client, "list_accounts"):
        page_number += 1
        accounts = [
            OrganizationAccount(
                account_id=acct["Id"],
                arn=acct.get("Arn", ""),
                name=acct.get("Name", acct["Id"]),
                email=acct.get("Email", ""),
            )
            for acct in page.get("Accounts", [])
        ]
        logger.debug(f"Organization accounts page {page_number}: {len(accounts)} accounts")
        yield accounts
