class ConstantsClass(type):
    """A metaclass for classes that should only contain string constants."""

    def __setattr__(self, name, value):
        raise TypeError("Constants class cannot be modified")

    def get_values(cls):
        """Get all user-defined string values of the class."""
        return [
            value
            for key, value in cls.__dict__.items()
            if not key.startswith("__") and isinstance(value, str)
        ]


class ConfigKeys(metaclass=ConstantsClass):
    """String constants for accessing the config."""

    VERSION = "version"
    OUTPUT_DIRECTORY = "output_directory"
    SCORE_PATH = "score_path"
    COUNT_PATH = "count_path"

    GENERAL = "general"
    LOG_LEVEL = "log_level"
    THREAD_COUNT = "thread_count"
    PROGRESS_BAR = "progress_bar"

    LOCALIZATION = "localization"
    MIN_SCORE = "min_score"
    TOLERANCE = "tolerance"
    SKIP_INVALID = "skip_invalid"

    OUTPUT = "output"
    FILE_FORMAT = "file_format"


class SiteCols(metaclass=ConstantsClass):
    """String constants for the long-form score, count and assignment tables."""

    PSM_ID = "psm_id"
    MODIFICATION = "modification"
    SITE = "site"
    SCORE = "score"
    N_MODIFICATIONS = "n_modifications"
    INSTANCE_IDX = "instance_idx"

    N_ASSIGNED = "n_assigned"
    FULLY_LOCALIZED = "fully_localized"
    SKIPPED = "skipped"


class OutputFiles(metaclass=ConstantsClass):
    ASSIGNMENT_FILE_NAME = "site_assignments"
    SUMMARY_FILE_NAME = "site_summary"
    CONFIG_FILE_NAME = "frozen_config.yaml"
