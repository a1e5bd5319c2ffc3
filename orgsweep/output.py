"""
Console output for the orgsweep CLI.

Every user-facing line the CLI prints goes through OutputHandler, so the
command handlers in main.py stay free of formatting details.
"""

import json
from typing import Any, Dict, List, Optional

DIVIDER_WIDTH = 80


class OutputHandler:
    """Formats crawl status, results and failures for the terminal."""

    @staticmethod
    def crawl_status(status: Dict[str, Any]) -> None:
        """
        Print the public status of a crawl session.

        Args:
            status: Dictionary with 'status', 'final_statement' and optional
                'progress' and 'quota' keys
        """
        print(f"\n📋 Crawl {status.get('status', 'unknown')}: {status.get('final_statement', '')}")
        progress = status.get("progress")
        if progress:
            print(
                f"   {progress.get('finished', 0)} of {progress.get('total', 0)} accounts finished, "
                f"current account {progress.get('current_account_id') or '-'}"
            )
        quota = status.get("quota")
        if quota:
            print(f"   {quota.get('allowed', 0)} of {quota.get('total', 0)} organization accounts allowed by tier")

    @staticmethod
    def crawl_errors(errors: List[Dict[str, Any]]) -> None:
        """Print one line per failed account under a divider; nothing when there are no errors."""
        if not errors:
            return
        print("\n" + "=" * DIVIDER_WIDTH)
        print(f"CRAWL ERRORS ({len(errors)})")
        print("=" * DIVIDER_WIDTH)
        for error in errors:
            print(f"{error['account_id']} ({error.get('email') or '-'}): {error['message']}")

    @staticmethod
    def error(title: str, error: Exception) -> None:
        print(f"\n🚨 {title}:\n{error}\n")

    @staticmethod
    def success(title: str, data: Optional[Any] = None) -> None:
        """
        Print a confirmation, followed by the response body if there is one.

        Dict and list bodies are printed as indented JSON; datetimes and
        other non-JSON values are rendered with str().
        """
        print(f"\n✅ {title}")
        if not data:
            return
        if isinstance(data, (dict, list)):
            print(json.dumps(data, indent=2, default=str))
        else:
            print(data)
