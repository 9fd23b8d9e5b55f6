"""Error types raised while building a bootstrap launcher.

Every error carries the process exit code the CLI reports for it. Argument
validation problems exit with ``255``; everything else exits with ``1``.
"""


class BootstrapError(RuntimeError):
    """Raised when building a bootstrap launcher fails."""

    exit_code: int = 1


class MissingMainClass(BootstrapError):
    """Raised when no entry point class was specified."""

    exit_code = 255


class MissingDownloadDir(BootstrapError):
    """Raised when a thin launcher is requested without a download directory."""

    exit_code = 255


class MalformedProperty(BootstrapError):
    """Raised when a ``key=value`` property override lacks its ``=``."""

    exit_code = 255


class MalformedIsolation(BootstrapError):
    """Raised when an isolation spec is not ``TARGET:org:name[:version]``."""

    exit_code = 255


class MissingTemplateResource(BootstrapError):
    """Raised when the base ``bootstrap.jar`` archive cannot be located."""


class TemplateArchiveError(BootstrapError):
    """Raised when the template archive cannot be read as a ZIP file."""


class ArtifactReadError(BootstrapError):
    """Raised when an artifact file cannot be read while embedding it."""


class ArtifactNameCollision(BootstrapError):
    """Raised when two distinct artifact files would share one ``jars/`` entry."""


class ResolutionError(BootstrapError):
    """Raised when a resolution manifest cannot be loaded."""


class FetchError(BootstrapError):
    """Raised when an artifact has no usable local file."""


class OutputExists(BootstrapError):
    """Raised when the output file exists and overwriting was not requested."""


class OutputWriteError(BootstrapError):
    """Raised when the launcher file cannot be written."""


class PermissionAdjustError(BootstrapError):
    """Raised when the launcher file cannot be made executable."""
