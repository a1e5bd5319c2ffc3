"""
Pagination helpers shared by the AWS modules.
"""

from collections.abc import Iterator
from typing import Any

from botocore.client import BaseClient

__all__ = ["collect_items", "paginate"]


def paginate(
    client: BaseClient,
    operation_name: str,
    **operation_kwargs: Any
) -> Iterator[dict[str, Any]]:
    """
    Yield pages for a paginated AWS API operation, in API order.
    """
    paginator = client.get_paginator(operation_name)
    yield from paginator.paginate(**operation_kwargs)


def collect_items(
    client: BaseClient,
    operation_name: str,
    result_key: str,
    **operation_kwargs: Any
) -> list[dict[str, Any]]:
    """
    Concatenate the ``result_key`` list of every page of an operation.

    Example:
        collect_items(iam_client, "list_access_keys", "AccessKeyMetadata", UserName="alice")
    """
    items: list[dict[str, Any]] = []
    for page in paginate(client, operation_name, **operation_kwargs):
        items.extend(page.get(result_key, []))
    return items
