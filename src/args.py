"""Argument parsing functionality for pmstats."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="pmstats",
        description=(
            "pmstats - Package manager usage statistics for popular GitHub repositories"
        ),
        add_help=True,
    )

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--token",
                        dest="GITHUB_TOKEN",
                        help="GitHub token (defaults to the GITHUB_TOKEN environment variable)",
                        action="store",
                        type=str)
    parser.add_argument("--cache-dir",
                        dest="CACHE_DIR",
                        help="Directory for cached HTTP responses (default: .cache)",
                        action="store",
                        type=str)
    parser.add_argument("--results-dir",
                        dest="RESULTS_DIR",
                        help="Directory for result documents (default: results)",
                        action="store",
                        type=str)
    parser.add_argument("--query",
                        dest="QUERY",
                        help="GitHub search qualifiers (default: stars:>1)",
                        action="store",
                        type=str)
    parser.add_argument("--max-pages",
                        dest="MAX_PAGES",
                        help="Maximum search result pages per language",
                        action="store",
                        type=int)
    parser.add_argument("-j", "--max-workers",
                        dest="MAX_WORKERS",
                        help="Repositories classified concurrently (default: 1)",
                        action="store",
                        type=int)
    parser.add_argument("--debug",
                        dest="DEBUG",
                        help="Classify strictly one repository at a time and log every probe.",
                        action="store_true")
    parser.add_argument("--summary",
                        dest="SUMMARY_ONLY",
                        help="Only summarize the latest results already on disk.",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
