"""Exception types raised by shopkit."""


class ShopkitError(Exception):
    """Base class for all shopkit errors."""


class InvalidQuantityError(ShopkitError, ValueError):
    """A requested or reserved quantity violates the caller contract.

    This is a programming error in the caller (e.g. asking for 0 units),
    not a stock condition. Stock shortages are reported through
    AvailabilityResult instead.
    """


class IncompleteSelectionError(ShopkitError, ValueError):
    """A strict resolution was asked for but some axes have no valid selection."""

    def __init__(self, missing_axes):
        self.missing_axes = list(missing_axes)
        super().__init__(
            "Selection does not cover variation axes: " + ", ".join(self.missing_axes)
        )


class InvalidProductError(ShopkitError, ValueError):
    """A product record from the store cannot be turned into a Product."""


class ImportFormatError(ShopkitError, ValueError):
    """The import document as a whole is unusable (no header, missing required columns)."""


class StoreError(ShopkitError):
    """Base class for record store failures."""


class StoreWriteError(StoreError):
    """The store rejected a single read or write for one product row."""


class StoreUnavailableError(StoreError):
    """The store cannot be reached at all; the whole batch must stop."""
