#!python
"""CLI for alphaSite.

Ideally the CLI module should have as little logic as possible so that the assignment behaves the same from the CLI or a jupyter notebook.
"""

import argparse
import json
import logging
import os
from pathlib import Path

import yaml

from alphasite import __version__
from alphasite.constants.keys import ConfigKeys

logger = logging.getLogger()

EXIT_CODE_USER_ERROR = 1
EXIT_CODE_WRONG_CLI_PARAM = 126
EXIT_CODE_UNKNOWN_ERROR = 127

epilog = "Parameters passed via CLI will overwrite parameters from config file."

parser = argparse.ArgumentParser(
    description="Assign modification instances to peptide sites with alphaSite",
    epilog=epilog,
)
parser.add_argument(
    "--version",
    "-v",
    action="store_true",
    help="Print version and exit",
)
parser.add_argument(
    "--check",
    action="store_true",
    help="Check if package can be imported",
)
parser.add_argument(
    "--output",
    "--output-directory",
    "-o",
    type=str,
    help="Output directory.",
    nargs="?",
    default=None,
)
parser.add_argument(
    "--scores",
    "--score-path",
    "-s",
    type=str,
    help="Path to the localization score table (tsv, csv or parquet) with columns psm_id, modification, site, score.",
    nargs="?",
    default=None,
)
parser.add_argument(
    "--counts",
    "--count-path",
    "-n",
    type=str,
    help="Path to the occurrence count table (tsv, csv or parquet) with columns psm_id, modification, n_modifications.",
    nargs="?",
    default=None,
)
parser.add_argument(
    "--config",
    "-c",
    type=str,
    help="Path to config yaml file which will be used to update the default config.",
    nargs="?",
    default=None,
)
parser.add_argument(
    "--config-dict",
    type=str,
    help="Python dictionary which will be used to update the default config. Keys and string values need to be surrounded by "
    'escaped double quotes, e.g. "{\\"key1\\": \\"value1\\"}".',
    nargs="?",
    default="{}",
)


def _recursive_update(full_dict: dict, update_dict: dict):
    """recursively update a dict with a second dict. The dict is updated inplace.

    Parameters
    ----------
    full_dict : dict
        dict to be updated, is updated inplace.

    update_dict : dict
        dict with new values

    """
    for key, value in update_dict.items():
        if key in full_dict and isinstance(value, dict):
            _recursive_update(full_dict[key], update_dict[key])
        else:
            full_dict[key] = value


def _get_config_from_args(
    args: argparse.Namespace,
) -> tuple[dict, str | None, str | None]:
    """Parse config file from `args.config` if given and update with optional JSON string `args.config_dict`."""

    config = {}
    if args.config is not None:
        with open(args.config) as f:
            config = yaml.safe_load(f) or {}

    if args.config_dict:
        try:
            _recursive_update(config, json.loads(args.config_dict))
        except Exception as e:
            print(f"Could not parse config update: {e}")

    return config, args.config, args.config_dict


def _get_from_args_or_config(
    args: argparse.Namespace, config: dict, *, args_key: str, config_key: str
) -> str:
    """Get a value from command line arguments (key: `args_key`) or config file (key: `config_key`), the former taking precedence."""
    value_from_args = args.__dict__.get(args_key)
    return value_from_args if value_from_args is not None else config.get(config_key)


def run_assignment(output_directory: str, user_config: dict, cli_params_config: dict):
    """Run the site assignment on the configured tables and write the results to `output_directory`.

    Parameters
    ----------
    output_directory : str
        Directory for result tables, frozen config and log.

    user_config : dict
        Config from yaml file and config dict.

    cli_params_config : dict
        Config values passed as dedicated command line parameters, taking precedence over `user_config`.

    """
    from alphasite.constants.keys import OutputFiles
    from alphasite.exceptions import NoInputDataError
    from alphasite.reporting.logging import print_environment, print_logo
    from alphasite.utils import read_df, write_df
    from alphasite.workflow.batch import localize_psm_df, summarize_assignments
    from alphasite.workflow.config import (
        USER_DEFINED,
        USER_DEFINED_CLI_PARAM,
        Config,
        load_default_config,
    )

    print_logo()
    print_environment()

    config = load_default_config()
    config.update(
        [
            Config(user_config, USER_DEFINED),
            Config(cli_params_config, USER_DEFINED_CLI_PARAM),
        ],
        do_print=True,
    )
    config[ConfigKeys.OUTPUT_DIRECTORY] = output_directory
    config.validate()

    logging.getLogger().setLevel(config[ConfigKeys.GENERAL][ConfigKeys.LOG_LEVEL])

    score_path = config[ConfigKeys.SCORE_PATH]
    count_path = config[ConfigKeys.COUNT_PATH]
    if score_path is None or count_path is None:
        raise NoInputDataError()

    config.to_yaml(os.path.join(output_directory, OutputFiles.CONFIG_FILE_NAME))

    score_df = read_df(score_path)
    count_df = read_df(count_path)

    assignment_df = localize_psm_df(score_df, count_df, config)
    summary_df = summarize_assignments(assignment_df, count_df)

    file_format = config[ConfigKeys.OUTPUT][ConfigKeys.FILE_FORMAT]
    write_df(
        assignment_df,
        os.path.join(output_directory, OutputFiles.ASSIGNMENT_FILE_NAME),
        file_format,
    )
    write_df(
        summary_df,
        os.path.join(output_directory, OutputFiles.SUMMARY_FILE_NAME),
        file_format,
    )

    logger.progress("Site assignment finished")


def run(*args, **kwargs):
    args, unknown = parser.parse_known_args()

    if unknown:
        print(f"Unknown arguments: {unknown}")
        parser.print_help()
        return EXIT_CODE_WRONG_CLI_PARAM

    if args.version:
        print(f"{__version__}")
        return

    # load modules only here to speed up -v and -h commands
    from alphasite.exceptions import CustomError
    from alphasite.reporting import reporting

    if args.check:
        print(f"{__version__}")
        print("Importing alphaSite works!")
        return

    user_config, config_file_path, extra_config_dict = _get_config_from_args(args)

    output_directory = _get_from_args_or_config(
        args, user_config, args_key="output", config_key=ConfigKeys.OUTPUT_DIRECTORY
    )

    if output_directory is None:
        parser.print_help()

        print("No output directory specified. Please do so via CL-argument or config.")
        return

    reporting.init_logging(output_directory)

    logger.info(
        f"Output directory: {Path(output_directory).absolute()}, cwd: {os.getcwd()}."
    )
    if config_file_path:
        logger.info(f"User provided config file: {config_file_path}.")
    if extra_config_dict:
        logger.info(f"User provided config dict: {extra_config_dict}.")

    cli_params_config = {
        **({ConfigKeys.SCORE_PATH: args.scores} if args.scores is not None else {}),
        **({ConfigKeys.COUNT_PATH: args.counts} if args.counts is not None else {}),
    }

    try:
        run_assignment(output_directory, user_config, cli_params_config)

    except Exception as e:
        if isinstance(e, CustomError):
            exit_code = EXIT_CODE_USER_ERROR
        else:
            import traceback

            logger.info(traceback.format_exc())
            exit_code = EXIT_CODE_UNKNOWN_ERROR

        logger.error(e)
        return exit_code


if __name__ == "__main__" and os.getenv("RUN_MAIN") == "1":
    run()
