"""
Catalog record models.

A catalog record is the normalized, queryable representation of one
discovered resource. Records are a tagged variant: ``resource_type`` is the
discriminant and each variant carries its own config payload model. Config
models keep AWS field casing so stored records read like the provider's
own documents, and allow extra attributes so nothing the provider returns
beyond the modelled fields is lost.
"""

from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .enums import ResourceType


class _ConfigPayload(BaseModel):
    model_config = ConfigDict(extra="allow")


class OrganizationAccountConfig(_ConfigPayload):
    accountId: str = ""
    arn: str = ""
    accountName: str = ""
    email: str = ""


class IamUserConfig(_ConfigPayload):
    UserName: str = ""
    UserId: str = ""
    Arn: str = ""
    Path: str = "/"
    # Inline policies are reduced to {"PolicyName": ...}
    UserPolicyList: List[Dict[str, str]] = Field(default_factory=list)
    GroupList: List[str] = Field(default_factory=list)
    AttachedManagedPolicies: List[Dict[str, str]] = Field(default_factory=list)
    Tags: List[Dict[str, str]] = Field(default_factory=list)
    mfaDevices: List[Dict[str, Any]] = Field(default_factory=list)
    accessKeys: List[Dict[str, Any]] = Field(default_factory=list)


class IamGroupConfig(_ConfigPayload):
    GroupName: str = ""
    GroupId: str = ""
    Arn: str = ""
    Path: str = "/"
    GroupPolicyList: List[Dict[str, Any]] = Field(default_factory=list)
    AttachedManagedPolicies: List[Dict[str, str]] = Field(default_factory=list)


class IamRoleConfig(_ConfigPayload):
    RoleName: str = ""
    RoleId: str = ""
    Arn: str = ""
    Path: str = "/"
    AttachedManagedPolicies: List[Dict[str, str]] = Field(default_factory=list)
    Tags: List[Dict[str, str]] = Field(default_factory=list)


class _RecordBase(BaseModel):
    arn: str
    label: str
    account_id: str
    account_email: str = ""


class OrganizationAccountRecord(_RecordBase):
    resource_type: Literal["AWS::Organizations::Account"] = ResourceType.ORGANIZATION_ACCOUNT.value
    config: OrganizationAccountConfig


class IamUserRecord(_RecordBase):
    resource_type: Literal["AWS::IAM::User"] = ResourceType.IAM_USER.value
    config: IamUserConfig


class IamGroupRecord(_RecordBase):
    resource_type: Literal["AWS::IAM::Group"] = ResourceType.IAM_GROUP.value
    config: IamGroupConfig


class IamRoleRecord(_RecordBase):
    resource_type: Literal["AWS::IAM::Role"] = ResourceType.IAM_ROLE.value
    config: IamRoleConfig


CatalogRecord = Annotated[
    Union[OrganizationAccountRecord, IamUserRecord, IamGroupRecord, IamRoleRecord],
    Field(discriminator="resource_type"),
]
"""Any catalog record, dispatched on ``resource_type``."""
