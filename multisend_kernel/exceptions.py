"""
Typed Exception Hierarchy for the Multi-send Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A rejected transaction must tell the caller exactly which rule it broke.
Callers catch by type and read structured attributes; they never parse
message strings:

    try:
        changes = compute_balance_changes(balances, definitions, tx)
    except InsufficientBalanceError as e:
        notify(e.address, e.denom, shortfall=e.required - e.available)
    except MultiSendError as e:
        api_response(code=e.code, message=str(e))

Every exception has:
  1. A TYPED class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (address, denom, amounts)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    MultiSendError (base)
    |
    +-- TransactionError
    |   +-- AmountMismatchError
    |
    +-- AccountError
    |   +-- AddressNotFoundError
    |   +-- InsufficientBalanceError
    |   +-- DuplicateAddressError
    |   +-- BalanceOverflowError
    |
    +-- DenomError
        +-- UnknownDenomError
        +-- DuplicateDenomError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                  | When Raised
-------------|-----------------------|-------------------------------------------
Transaction  | AMOUNT_MISMATCH       | Input total != output total for a denom
-------------|-----------------------|-------------------------------------------
Account      | ADDRESS_NOT_FOUND     | Sender has no pre-transaction balance
             | INSUFFICIENT_BALANCE  | Balance < input amount plus fees
             | DUPLICATE_ADDRESS     | Address listed twice in original balances
-------------|-----------------------|-------------------------------------------
Denom        | UNKNOWN_DENOM         | Denom has no definition
             | DUPLICATE_DENOM       | Denom defined twice

All rejections are atomic: the whole transaction is refused and nothing is
applied. Failures are deterministic functions of the inputs, so there is no
retry policy.
===============================================================================
"""

from multisend_kernel.invariants import LedgerInvariant


class MultiSendError(Exception):
    """
    Base exception for all multi-send kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "MULTISEND_ERROR"
    invariant: LedgerInvariant | None = None


# Transaction-shape exceptions


class TransactionError(MultiSendError):
    """Base exception for errors in the shape of the transaction."""

    code: str = "TRANSACTION_ERROR"


class AmountMismatchError(TransactionError):
    """Input and output totals differ for a denom."""

    code: str = "AMOUNT_MISMATCH"
    invariant = LedgerInvariant.STRUCTURAL_BALANCE

    def __init__(self, denom: str, input_total: int, output_total: int):
        self.denom = denom
        self.input_total = input_total
        self.output_total = output_total
        super().__init__(
            f"Input and output amounts mismatch for denom {denom}: "
            f"inputs={input_total}, outputs={output_total}"
        )


# Account-related exceptions


class AccountError(MultiSendError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AddressNotFoundError(AccountError):
    """Sender has no record in the original balances."""

    code: str = "ADDRESS_NOT_FOUND"
    invariant = LedgerInvariant.KNOWN_SENDER

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Address not found in original balances: {address}")


class InsufficientBalanceError(AccountError):
    """Sender balance does not cover its input amount plus fees."""

    code: str = "INSUFFICIENT_BALANCE"
    invariant = LedgerInvariant.SOLVENCY

    def __init__(self, address: str, denom: str, available: int, required: int):
        self.address = address
        self.denom = denom
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient balance for denom {denom} in address {address}: "
            f"available={available}, required={required}"
        )


class DuplicateAddressError(AccountError):
    """Address appears more than once in the original balances."""

    code: str = "DUPLICATE_ADDRESS"

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Duplicate address in original balances: {address}")


class BalanceOverflowError(AccountError):
    """Net credit to an address would not fit a 128-bit coin amount."""

    code: str = "BALANCE_OVERFLOW"
    invariant = LedgerInvariant.DELTA_RANGE

    def __init__(self, address: str, denom: str, credit: int):
        self.address = address
        self.denom = denom
        self.credit = credit
        super().__init__(
            f"Balance change for denom {denom} in address {address} out of range: "
            f"credit={credit}"
        )


# Denom-related exceptions


class DenomError(MultiSendError):
    """Base exception for denom-related errors."""

    code: str = "DENOM_ERROR"


class UnknownDenomError(DenomError):
    """Denom referenced by the transaction has no definition."""

    code: str = "UNKNOWN_DENOM"
    invariant = LedgerInvariant.KNOWN_DENOM

    def __init__(self, denom: str):
        self.denom = denom
        super().__init__(f"Unknown denom: {denom}")


class DuplicateDenomError(DenomError):
    """Denom is defined more than once."""

    code: str = "DUPLICATE_DENOM"

    def __init__(self, denom: str):
        self.denom = denom
        super().__init__(f"Duplicate denom definition: {denom}")
