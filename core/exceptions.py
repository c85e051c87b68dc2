"""
Domain errors raised by the order store.

Every error aborts the enclosing transaction; none is retried here. Views map
them to JSON error responses through ``code``.
"""


class FoodExpressError(Exception):
    code = 'FOODEXPRESS_ERROR'

    def __init__(self, message='', **details):
        super().__init__(message)
        self.details = details


class ReferentialIntegrityError(FoodExpressError):
    """A maintainer fired for a row whose parent does not exist."""
    code = 'REFERENTIAL_INTEGRITY'


class InvalidReferenceError(FoodExpressError):
    """Placement was given a customer, restaurant or address that does not exist."""
    code = 'INVALID_REFERENCE'


class UnknownMenuItemError(InvalidReferenceError):
    code = 'UNKNOWN_MENU_ITEM'

    def __init__(self, item_ids):
        self.item_ids = sorted(item_ids)
        super().__init__(
            f'Unknown menu item(s): {", ".join(str(i) for i in self.item_ids)}',
            item_ids=self.item_ids,
        )


class EmptyOrderError(FoodExpressError):
    """No valid line items remain for the order."""
    code = 'EMPTY_ORDER'


class ConstraintViolationError(FoodExpressError):
    """Quantity <= 0, rating outside [1, 5], or a negative order total."""
    code = 'CONSTRAINT_VIOLATION'
