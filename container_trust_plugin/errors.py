"""
errors.py

Deny reasons raised while deciding a pull request. Each one is terminal for
the request it was raised for; nothing is retried.
"""


class TrustPluginError(Exception):
    """Base class for every reason a pull is denied."""

    # Intentional denies travel in the response Msg field, failures in Err.
    as_message = False


class MalformedRequestError(TrustPluginError):
    pass


class QualificationError(TrustPluginError):
    pass


class AmbiguousQualificationError(TrustPluginError):
    pass


class RegistryListError(TrustPluginError):
    pass


class PolicyEvaluationError(TrustPluginError):
    pass


class PolicyDeniedError(TrustPluginError):
    as_message = True

    def __init__(self, message: str = "image isn't allowed") -> None:
        super().__init__(message)


class DigestMismatchError(TrustPluginError):
    def __init__(self, provided: str, computed: str) -> None:
        super().__init__(f"digests mismatch, provided {provided}, computed {computed}")
        self.provided = provided
        self.computed = computed


class ManualPullRequiredError(TrustPluginError):
    def __init__(self, name: str, digest: str, tag: str) -> None:
        super().__init__(
            "image is allowed but can't pull by tag. "
            f"Pull the image with 'docker pull {name}@{digest}' "
            f"and tag it with 'docker tag {name}@{digest} {name}:{tag}'"
        )


class AutoPullError(TrustPluginError):
    pass


class EngineError(Exception):
    """A call to the Docker engine failed."""


class PolicyFormatError(ValueError):
    """The trust policy document is not valid."""
