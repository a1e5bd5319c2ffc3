import argparse
import yaml
from typing import Any, Dict, List, Optional

from .config import OrgSweepConfig
from .enums import AccountTier, RemediationAction

DEFAULT_CONFIG_PATH = "orgsweep.yaml"


def load_yaml_config(path: str) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Dictionary containing the loaded configuration, or empty dict if file not found
    """
    try:
        with open(path, 'r') as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"Config file '{path}' not found. Continuing without it.")
        return {}


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments for the orgsweep tool.

    Args:
        argv: Arguments to parse (defaults to sys.argv[1:])

    Returns:
        Parsed command line arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="orgsweep",
        description="OrgSweep - inventory and remediate IAM identities across an AWS Organization"
    )

    parser.add_argument(
        '--config',
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help=f'Path to config YAML (default {DEFAULT_CONFIG_PATH})'
    )

    # Config overrides (override YAML if provided)
    parser.add_argument(
        '--tenant-id',
        dest='tenant_id',
        type=str,
        help='Tenant whose crawl state is used'
    )
    parser.add_argument(
        '--state-dir',
        dest='state_dir',
        type=str,
        help='Directory holding per-tenant crawl state (default orgsweep_state)'
    )
    parser.add_argument(
        '--role-name',
        dest='role_name',
        type=str,
        help='Cross-account role assumed in member accounts (default OrganizationAccountAccessRole)'
    )
    parser.add_argument(
        '--region',
        dest='region',
        type=str,
        help='AWS region for API calls (default us-east-1)'
    )
    parser.add_argument(
        '--account-tier',
        dest='account_tier',
        choices=[tier.value for tier in AccountTier],
        help='Subscription tier that bounds how many accounts are crawled'
    )
    parser.add_argument(
        '--fan-out-width',
        dest='fan_out_width',
        type=int,
        help='Concurrent enrichment calls per account crawl (default 5)'
    )
    parser.add_argument(
        '--log-level',
        dest='log_level',
        type=str,
        help='Logging level (default INFO)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    set_credentials = subparsers.add_parser('set-credentials', help='Store organization credentials')
    set_credentials.add_argument('--access-key-id', dest='access_key_id', required=True)
    set_credentials.add_argument('--secret-access-key', dest='secret_access_key', required=True)

    subparsers.add_parser('clear-credentials', help='Forget organization credentials')
    subparsers.add_parser('settings', help='Show masked organization credentials')
    subparsers.add_parser('crawl', help='Crawl every allowed account until done')
    subparsers.add_parser('status', help='Show crawl status')
    subparsers.add_parser('resources', help='Print the catalog and crawl errors as JSON')
    subparsers.add_parser('cancel', help='Request cancellation of the running crawl')
    subparsers.add_parser('resume', help='Continue a running crawl whose process stopped')
    subparsers.add_parser('clear', help='Reset the crawl session')

    action = subparsers.add_parser('action', help='Run a remediation action against an IAM user')
    action.add_argument(
        '--action',
        dest='action',
        required=True,
        choices=[remediation.value for remediation in RemediationAction]
    )
    action.add_argument('--arn', dest='arn', required=True, help='ARN of the IAM user')
    action.add_argument('--user-name', dest='user_name', help='User name (defaults to the last ARN segment)')

    return parser.parse_args(argv)


def merge_configs(yaml_config: Dict[str, Any], cli_args: argparse.Namespace) -> OrgSweepConfig:
    """
    Merge YAML configuration with CLI arguments and validate the result.

    Args:
        yaml_config: Configuration loaded from YAML file
        cli_args: Parsed command line arguments

    Returns:
        Validated OrgSweepConfig

    Raises:
        ValidationError: If configuration validation fails
    """
    # Start with YAML
    merged = yaml_config.copy()

    # Apply CLI overrides (only if CLI provided them)
    cli_dict = {
        k: v for k, v in vars(cli_args).items()
        if k in OrgSweepConfig.model_fields and v is not None
    }
    merged.update(cli_dict)

    return OrgSweepConfig(**merged)
