"""Custom exceptions for poolreview."""


class PoolReviewError(Exception):
    """Base exception for all poolreview errors."""


class ConfigError(PoolReviewError):
    """Configuration-related errors."""


class LoaderError(PoolReviewError):
    """A pool file could not be read or converted into an item."""

    def __init__(self, filename: str, detail: str):
        self.filename = filename
        self.detail = detail
        super().__init__(f"{filename}: {detail}")


class GitError(PoolReviewError):
    """Running git to collect the changed files failed."""


class IndexNotFoundError(PoolReviewError):
    """No pool index has been built yet."""


class NotFoundError(PoolReviewError):
    """No item exists for the requested (type, uuid)."""

    def __init__(self, item_type: str, uuid: str):
        self.item_type = item_type
        self.uuid = uuid
        super().__init__(f"No {item_type} with uuid {uuid}")


class InvalidRootError(PoolReviewError):
    """A closure root was requested for an item that is not a part."""

    def __init__(self, uuid: str, actual_type: str):
        self.uuid = uuid
        self.actual_type = actual_type
        super().__init__(f"Root {uuid} is a {actual_type}, not a part")


class CyclicDerivationError(PoolReviewError):
    """A part's base chain leads back to itself."""

    def __init__(self, part_id: str, chain: list[str]):
        self.part_id = part_id
        self.chain = chain
        super().__init__(
            f"Part {part_id} has a cyclic base chain: " + " -> ".join(chain)
        )
