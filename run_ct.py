#!/usr/bin/env python3
"""
Run a project's Common Test suites.

This compiles the application together with the suites in the test
directory, then runs them with ct_run.

Command line options:
    --suite, -s       comma separated list of suites to run
    --group, -g       comma separated list of groups to run
    --testcase, -t    comma separated list of test cases to run
    --config, -f      test config to use; default: test/test.config
    --log-dir, -l     change the output directory; default: _build/<ENV>/ct_logs
    --cover, -c       run cover report
    --no-cover        do not run cover, even when the project file enables it
    --dir, -d         test source directory; default: test
"""

import logging
import os
import sys

from constants import EXIT_FAILURE, EXIT_OK, EXIT_USAGE
from ct_task import CtTask
from exceptions import CtRunnerError, UsageError


def configure_logging():
    debug = os.environ.get('CT_RUNNER_DEBUG', 'false').lower() == 'true'
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def main(argv=None) -> int:
    """Main entry point; returns the process exit status"""
    configure_logging()
    if argv is None:
        argv = sys.argv[1:]

    try:
        CtTask().run(argv)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except CtRunnerError as e:
        print(f"** {e}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("\n\nExiting...", file=sys.stderr)
        return EXIT_FAILURE

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
