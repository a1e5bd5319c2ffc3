"""
Tests for orgsweep.normalize module.

Tests for mapping raw IAM documents and organization accounts to catalog records.
"""

from datetime import datetime, timezone

from orgsweep.catalog import IamGroupRecord, IamRoleRecord, IamUserRecord, OrganizationAccountRecord
from orgsweep.enums import ResourceType
from orgsweep.normalize import (
    normalize_account,
    normalize_group,
    normalize_inventory,
    normalize_role,
    normalize_user,
)
from orgsweep.types import IdentityInventory, OrganizationAccount


class TestNormalizeUser:
    """Test normalize_user function."""

    def test_inline_policies_reduced_to_names(self) -> None:
        """Test that inline policy documents are dropped and only names kept."""
        user = {
            "UserName": "alice",
            "UserId": "AIDAALICE",
            "Arn": "arn:aws:iam::111111111111:user/alice",
            "UserPolicyList": [
                {"PolicyName": "inline-admin", "PolicyDocument": {"Statement": [{"Effect": "Allow"}]}},
                {"PolicyName": "inline-read", "PolicyDocument": "%7B%7D"},
            ],
            "AttachedManagedPolicies": [
                {"PolicyName": "AdministratorAccess", "PolicyArn": "arn:aws:iam::aws:policy/AdministratorAccess"}
            ],
        }

        record = normalize_user(user)

        assert isinstance(record, IamUserRecord)
        assert record.resource_type == ResourceType.IAM_USER
        assert record.label == "alice"
        assert record.account_id == "111111111111"
        assert record.config.UserPolicyList == [{"PolicyName": "inline-admin"}, {"PolicyName": "inline-read"}]
        assert record.config.AttachedManagedPolicies[0]["PolicyName"] == "AdministratorAccess"

    def test_missing_optional_fields_become_empty(self) -> None:
        """Test that a bare user document still normalizes with empty collections."""
        record = normalize_user({"UserName": "bob", "Arn": "arn:aws:iam::111111111111:user/bob"})

        assert record.config.UserPolicyList == []
        assert record.config.GroupList == []
        assert record.config.AttachedManagedPolicies == []
        assert record.config.mfaDevices == []
        assert record.config.accessKeys == []

    def test_empty_document_does_not_fail(self) -> None:
        """Test that a document with no fields uses the fallback account ID."""
        record = normalize_user({}, account_id="222222222222")

        assert record.arn == ""
        assert record.label == ""
        assert record.account_id == "222222222222"

    def test_datetimes_are_serialized(self) -> None:
        """Test that datetime values are converted to strings."""
        created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        record = normalize_user({
            "UserName": "carol",
            "Arn": "arn:aws:iam::111111111111:user/carol",
            "CreateDate": created,
            "accessKeys": [{"AccessKeyId": "AKIA1", "LastUsedDate": None}],
        })

        dumped = record.model_dump(mode="json")
        assert dumped["config"]["CreateDate"] == str(created)
        assert dumped["config"]["accessKeys"] == [{"AccessKeyId": "AKIA1", "LastUsedDate": None}]

    def test_input_not_mutated(self) -> None:
        """Test that the raw document is left untouched."""
        user = {"UserName": "dave", "UserPolicyList": [{"PolicyName": "p", "PolicyDocument": {}}]}
        normalize_user(user)
        assert user["UserPolicyList"] == [{"PolicyName": "p", "PolicyDocument": {}}]


class TestNormalizeGroupAndRole:
    """Test normalize_group and normalize_role functions."""

    def test_group(self) -> None:
        """Test group normalization keeps attributes."""
        record = normalize_group({
            "GroupName": "developers",
            "Arn": "arn:aws:iam::111111111111:group/developers",
            "GroupPolicyList": [{"PolicyName": "g"}],
        })

        assert isinstance(record, IamGroupRecord)
        assert record.resource_type == ResourceType.IAM_GROUP
        assert record.label == "developers"
        assert record.config.GroupPolicyList == [{"PolicyName": "g"}]
        assert record.config.AttachedManagedPolicies == []

    def test_role_strips_trust_and_inline_policies(self) -> None:
        """Test that the trust policy and inline policies are removed from roles."""
        record = normalize_role({
            "RoleName": "deploy",
            "Arn": "arn:aws:iam::111111111111:role/deploy",
            "AssumeRolePolicyDocument": {"Statement": []},
            "RolePolicyList": [{"PolicyName": "inline", "PolicyDocument": {}}],
            "MaxSessionDuration": 3600,
        })

        assert isinstance(record, IamRoleRecord)
        dumped = record.model_dump(mode="json")["config"]
        assert "AssumeRolePolicyDocument" not in dumped
        assert "RolePolicyList" not in dumped
        assert dumped["MaxSessionDuration"] == 3600
        assert record.label == "deploy"


class TestNormalizeAccount:
    """Test normalize_account function."""

    def test_account_record(self) -> None:
        """Test that an organization account becomes a labelled account record."""
        account = OrganizationAccount(
            account_id="111111111111",
            arn="arn:aws:organizations::999999999999:account/o-x/111111111111",
            name="prod",
            email="prod@example.com",
        )

        record = normalize_account(account)

        assert isinstance(record, OrganizationAccountRecord)
        assert record.resource_type == ResourceType.ORGANIZATION_ACCOUNT
        assert record.label == "prod@example.com"
        assert record.account_email == "prod@example.com"
        assert record.config.accountName == "prod"


class TestNormalizeInventory:
    """Test normalize_inventory function."""

    def test_order_users_groups_roles(self) -> None:
        """Test records are produced users first, then groups, then roles."""
        inventory = IdentityInventory(
            users=[{"UserName": "u", "Arn": "arn:aws:iam::111111111111:user/u"}],
            groups=[{"GroupName": "g", "Arn": "arn:aws:iam::111111111111:group/g"}],
            roles=[{"RoleName": "r", "Arn": "arn:aws:iam::111111111111:role/r"}],
        )

        records = normalize_inventory(inventory, "111111111111")

        assert [record.resource_type for record in records] == [
            ResourceType.IAM_USER,
            ResourceType.IAM_GROUP,
            ResourceType.IAM_ROLE,
        ]

    def test_empty_inventory(self) -> None:
        """Test an empty inventory yields no records."""
        assert normalize_inventory(IdentityInventory()) == []
