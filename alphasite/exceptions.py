"""Module containing custom exceptions."""


class CustomError(Exception):
    """Custom alphaSite error class."""

    _error_code = ""
    _msg = ""
    _detail_msg = ""
    _user_msg = ""

    @property
    def error_code(self):
        return self._error_code

    @property
    def msg(self):
        return self._msg

    @property
    def detail_msg(self):
        return self._detail_msg

    def __init__(self, msg: str = ""):
        self._user_msg = msg

        super().__init__(self._msg)

    def __str__(self):
        return (
            f"{self._error_code}: {self._msg}\n'{self._user_msg}'\n{self._detail_msg}"
        )


class BusinessError(CustomError):
    """Custom error class for 'business' errors.

    A 'business' error is an error that is caused during processing the input (data, configuration, ...) and not by a
    malfunction in alphaSite.
    """


class UserError(CustomError):
    """Custom error class for 'user' errors.

    A 'user' error is an error that is caused by the incompatible user input (data, configuration, ...) and not by a
    malfunction in alphaSite.
    """


class GenericUserError(UserError):
    """Raise when something is wrong with the user."""

    _error_code = "USER_ERROR"

    def __init__(self, msg: str, detail_msg: str = ""):
        self._msg = msg
        self._detail_msg = detail_msg


class NoInputDataError(UserError):
    """Raise when no score table was provided."""

    _error_code = "NO_INPUT_DATA"

    _msg = "No localization score table available."

    _detail_msg = """No localization score table available.

    Provide a score table via the command line ('--scores') or the config ('score_path')
    and an occurrence count table via '--counts' or 'count_path'."""


class ConfigurationError(BusinessError):
    """Raise when the input violates the contract of the site assignment engine or the configuration is malformed.

    This is never a transient condition: the caller decides whether to skip the peptide or abort.
    """

    _error_code = "CONFIGURATION_ERROR"

    _msg = "Malformed or invalid configuration."

    def __init__(self, detail_msg: str = ""):
        self._detail_msg = detail_msg


class MissingOccurrenceCountError(ConfigurationError):
    """Raise when a modification with candidate sites has no declared occurrence count."""

    _error_code = "MISSING_OCCURRENCE_COUNT"

    _msg = "Modification without occurrence count."

    def __init__(self, modification):
        self.modification = modification
        super().__init__(
            f"Modification '{modification}' has candidate sites but no occurrence count."
        )


class MissingScoreError(ConfigurationError):
    """Raise when a candidate site has no localization score."""

    _error_code = "MISSING_SCORE"

    _msg = "Candidate site without localization score."

    def __init__(self, modification, site):
        self.modification = modification
        self.site = site
        super().__init__(
            f"No score for modification '{modification}' at candidate site {site}."
        )


class InvalidInputError(ConfigurationError):
    """Raise when a single input value cannot be used (negative count, NaN score, unorderable keys, ...)."""

    _error_code = "INVALID_INPUT"

    _msg = "Invalid site assignment input."


class InconsistentGraphError(ConfigurationError):
    """Raise when a bipartite graph references nodes it does not contain."""

    _error_code = "INCONSISTENT_GRAPH"

    _msg = "Structurally inconsistent candidate graph."


class KeyAddedConfigError(ConfigurationError):
    """Raise when a key should be added to a config."""

    def __init__(self, key: str, value: str, config_name: str):
        self._key = key
        self._value = value
        self._config_name = config_name
        super().__init__(
            f"Defining new keys is not allowed when updating a config: "
            f"key='{self._key}', value='{self._value}', config_name='{self._config_name}'"
        )


class TypeMismatchConfigError(ConfigurationError):
    """Raise when the type of a value does not match the default type."""

    def __init__(self, key: str, value: str, config_name: str, extra_msg: str):
        self._key = key
        self._value = value
        self._config_name = config_name
        super().__init__(
            f"Types of values must match default config: "
            f"key='{self._key}', value='{self._value}', config_name='{self._config_name}', types='{extra_msg}'"
        )
