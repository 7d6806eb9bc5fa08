"""
Shared dependencies and error mapping for the API routers
"""

from typing import Callable, Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..banking import BankingService
from ..errors import (
    AlreadyExistsError, AlreadyLinkedError, CompensationFailedError,
    InactiveAccountError, InsufficientFundsError, InvalidAmountError,
    InvalidInputError, LedgerError, NonZeroBalanceError, NotFoundError,
)
from ..journal import Transaction
from ..logging_config import get_logger
from .schemas import MovementResponse, TransactionResponse


logger = get_logger("retail_ledger.api")

# First match wins, so subclasses must come before their bases
ERROR_STATUS_CODES = [
    (CompensationFailedError, 500),
    (NotFoundError, 404),
    (AlreadyExistsError, 409),
    (AlreadyLinkedError, 409),
    (InvalidInputError, 400),
    (InvalidAmountError, 400),
    (InsufficientFundsError, 409),
    (InactiveAccountError, 409),
    (NonZeroBalanceError, 409),
]


def get_banking_service(request: Request) -> BankingService:
    """Banking service attached to the running application"""
    return request.app.state.banking_service


def status_code_for(exc: LedgerError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 400


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.critical("Unrecoverable ledger error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "code": exc.code}
        )


def run_movement(
    service: BankingService,
    operation: Callable[[], Optional[Transaction]],
    *account_numbers: str
) -> MovementResponse:
    """
    Run a deposit, withdrawal or transfer and report the balances it left.

    The account locks are held across the operation and the balance reads,
    so a concurrent request cannot move money in between.
    """
    with service.ledger.lock_accounts(*account_numbers):
        transaction = operation()
        balances = {n: str(service.get_balance(n)) for n in account_numbers}

    return MovementResponse(
        balances=balances,
        transaction=TransactionResponse.from_transaction(transaction) if transaction else None,
        journal_recorded=transaction is not None,
    )
