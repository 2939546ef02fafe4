"""pmstats - Package manager usage statistics for popular GitHub repositories.

Lists the most starred JavaScript and TypeScript repositories, classifies the
package manager each one uses from files on its default branch, and writes
dated statistics documents.

    Returns:
        int: Exit code
"""
import logging
import os
import sys

from constants import ExitCodes, Constants
from common.errors import ClassificationError, PmStatsError, TransportError
from common.logging_utils import configure_logging, extra_context, is_debug_enabled, Timer
from args import parse_args
from cli_config import apply_overrides, get_github_token, is_debug_mode, load_config_file
from detection.engine import classify_all
from probe.remote import FileProbe
from probe.store import FileStore
from repository.github import GitHubClient
from stats.aggregate import AggregateStats, date_stamp, find_latest_date, load_results, write_results
from stats.summary import render_summary

logger = logging.getLogger(__name__)


def setup_logging(args, debug=False):
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
        debug (bool): Force DEBUG level regardless of --loglevel.
    """
    level_name = "DEBUG" if debug else str(getattr(args, "LOG_LEVEL", None) or "INFO").upper()
    os.environ[Constants.ENV_LOG_LEVEL] = level_name
    configure_logging()
    logging.getLogger().setLevel(getattr(logging, level_name, logging.INFO))

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def summarize_latest(results_dir):
    """Log the summary of the most recent results in ``results_dir``.

    Returns:
        int: Exit code
    """
    date = find_latest_date(results_dir)
    if date is None:
        logger.error("No results found in %s", results_dir)
        return ExitCodes.FILE_ERROR.value
    try:
        stats = load_results(results_dir, date)
    except (OSError, ValueError) as e:
        logger.error("Unable to read results for %s: %s", date, e)
        return ExitCodes.FILE_ERROR.value
    logger.info("\n%s", render_summary(stats, date))
    return ExitCodes.SUCCESS.value


def run(args, config):
    """Run a full collection: list, classify, aggregate, write.

    Returns:
        int: Exit code
    """
    token = get_github_token(args, config)
    if not token:
        logger.error("GitHub token missing; set %s or pass --token", Constants.ENV_GITHUB_TOKEN)
        return ExitCodes.CONFIG_ERROR.value

    strict = is_debug_mode(args, config)
    store = FileStore(Constants.CACHE_DIR)
    probe = FileProbe(store=store)
    client = GitHubClient(token=token, store=store)

    timer = Timer()
    with timer:
        try:
            repos = client.list_repositories()
            logger.info("Classifying %d repositories", len(repos))
            stats = AggregateStats(total=len(repos))
            classify_all(
                repos, probe, stats,
                max_workers=Constants.MAX_WORKERS,
                strict=strict,
            )
        except TransportError as e:
            logger.error("Request failed: %s", e)
            return ExitCodes.CONNECTION_ERROR.value
        except ClassificationError as e:
            logger.error("Classification failed: %s", e)
            return ExitCodes.CLASSIFICATION_ERROR.value
        except PmStatsError as e:
            logger.error("Run aborted: %s", e)
            return ExitCodes.CONNECTION_ERROR.value

    if is_debug_enabled(logger):
        logger.debug(
            "Classification finished",
            extra=extra_context(
                event="function_exit",
                component="cli",
                action="run",
                count=len(repos),
                requests=probe.requests_made,
                duration_ms=timer.duration_ms()
            )
        )

    date = date_stamp()
    try:
        write_results(stats, Constants.RESULTS_DIR, date)
    except OSError as e:
        logger.error("Unable to write results: %s", e)
        return ExitCodes.FILE_ERROR.value

    logger.info("Stats: %s", stats.overall_document())
    logger.info("\n%s", render_summary(stats, date))
    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    config = load_config_file(getattr(args, "CONFIG", None))
    setup_logging(args, debug=is_debug_mode(args, config))
    apply_overrides(args, config)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    if getattr(args, "SUMMARY_ONLY", False):
        sys.exit(summarize_latest(Constants.RESULTS_DIR))
    sys.exit(run(args, config))


if __name__ == "__main__":
    main()
