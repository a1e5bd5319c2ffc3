import argparse
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from botocore.exceptions import ClientError

from .config import OrgSweepConfig
from .exceptions import OrgSweepError
from .output import OutputHandler
from .service import CrawlService
from .usage import load_yaml_config, merge_configs, parse_cli_args

logger = logging.getLogger(__name__)


def setup_configuration(cli_args: argparse.Namespace, yaml_config: Dict[str, Any]) -> OrgSweepConfig:
    """
    Merge and validate configuration from YAML and CLI arguments.

    Args:
        cli_args: Parsed command line arguments
        yaml_config: Configuration loaded from YAML file

    Returns:
        Validated OrgSweepConfig object

    Raises:
        SystemExit: If configuration validation fails
    """
    try:
        final_config = merge_configs(yaml_config, cli_args)
    except (ValueError, TypeError) as e:
        OutputHandler.error("Configuration Error", e)
        sys.exit(1)

    return final_config


def run_crawl(service: CrawlService, tenant_id: str, cli_args: argparse.Namespace) -> None:
    """Start a crawl and drive the scheduler until no work remains."""
    service.start(tenant_id)
    steps = service.run_until_idle()
    logger.info(f"Crawl scheduler executed {steps} steps")

    status = service.get_status(tenant_id)
    OutputHandler.crawl_status(status)
    OutputHandler.crawl_errors(service.get_resources(tenant_id)["errors"])


def run_cancel(service: CrawlService, tenant_id: str, cli_args: argparse.Namespace) -> None:
    """Request cancellation and run any queued step that reaches the checkpoint."""
    service.cancel(tenant_id)
    service.run_until_idle()
    OutputHandler.crawl_status(service.get_status(tenant_id))


def run_resume(service: CrawlService, tenant_id: str, cli_args: argparse.Namespace) -> None:
    """Requeue a running crawl left behind by another process and drive it to completion."""
    service.resume(tenant_id)
    steps = service.run_until_idle()
    logger.info(f"Crawl scheduler executed {steps} steps")

    OutputHandler.crawl_status(service.get_status(tenant_id))
    OutputHandler.crawl_errors(service.get_resources(tenant_id)["errors"])


def run_action(service: CrawlService, tenant_id: str, cli_args: argparse.Namespace) -> None:
    config = {"UserName": cli_args.user_name} if cli_args.user_name else {}
    body = service.handle_action(tenant_id, cli_args.action, cli_args.arn, config)
    OutputHandler.success(body["message"], body)


def _set_credentials(service: CrawlService, tenant_id: str, cli_args: argparse.Namespace) -> None:
    OutputHandler.success(
        "Credentials saved",
        service.set_credentials(tenant_id, cli_args.access_key_id, cli_args.secret_access_key)
    )


def _clear_credentials(service: CrawlService, tenant_id: str, cli_args: argparse.Namespace) -> None:
    service.clear_credentials(tenant_id)
    OutputHandler.success("Credentials cleared")


COMMANDS: Dict[str, Callable[[CrawlService, str, argparse.Namespace], None]] = {
    "set-credentials": _set_credentials,
    "clear-credentials": _clear_credentials,
    "settings": lambda service, tenant_id, _: OutputHandler.success("Settings", service.get_settings(tenant_id)),
    "crawl": run_crawl,
    "status": lambda service, tenant_id, _: OutputHandler.crawl_status(service.get_status(tenant_id)),
    "resources": lambda service, tenant_id, _: OutputHandler.success("Resources", service.get_resources(tenant_id)),
    "cancel": run_cancel,
    "resume": run_resume,
    "clear": lambda service, tenant_id, _: OutputHandler.crawl_status(service.clear(tenant_id)),
    "action": run_action,
}


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for OrgSweep."""
    cli_args = parse_cli_args(argv)
    yaml_config = load_yaml_config(cli_args.config)

    final_config = setup_configuration(cli_args, yaml_config)
    logging.basicConfig(level=getattr(logging, final_config.log_level.upper(), logging.INFO))

    service = CrawlService.from_config(final_config)

    try:
        COMMANDS[cli_args.command](service, final_config.tenant_id, cli_args)
    except OrgSweepError as e:
        OutputHandler.error(type(e).__name__, e)
        logger.error(f"{cli_args.command} failed: {e}")
        sys.exit(1)
    except ClientError as e:
        error_code = e.response['Error']['Code']
        OutputHandler.error(f"AWS API Error ({error_code})", e)
        logger.error(f"AWS API error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
