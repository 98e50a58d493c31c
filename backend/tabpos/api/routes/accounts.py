"""Running account ("cari") routes."""

from fastapi import APIRouter

from tabpos.core.rbac import CanManageAccounts, RequireAdmin
from tabpos.core.responses import list_response, success_response
from tabpos.db.session import DbSession
from tabpos.schemas.account import (
    AccountCreate, AccountDetailResponse, AccountPayment, AccountResponse,
    AccountTransactionResponse, AccountUpdate,
)
from tabpos.services.account_service import AccountService

router = APIRouter()


@router.get("/")
def list_accounts(current_user: CanManageAccounts, db: DbSession):
    accounts = AccountService(db, current_user.tenant_id).list_accounts()
    return list_response([AccountResponse.model_validate(a) for a in accounts])


@router.post("/", response_model=AccountResponse, status_code=201)
def create_account(body: AccountCreate, current_user: CanManageAccounts, db: DbSession):
    return AccountService(db, current_user.tenant_id).create_account(body.name, body.phone, body.note)


@router.get("/{account_id}", response_model=AccountDetailResponse)
def get_account(account_id: int, current_user: CanManageAccounts, db: DbSession):
    service = AccountService(db, current_user.tenant_id)
    account = service.get_account(account_id)
    return AccountDetailResponse(
        account=AccountResponse.model_validate(account),
        transactions=[AccountTransactionResponse.model_validate(t) for t in service.transactions(account_id)],
    )


@router.patch("/{account_id}", response_model=AccountResponse)
def update_account(account_id: int, body: AccountUpdate, current_user: CanManageAccounts, db: DbSession):
    return AccountService(db, current_user.tenant_id).update_account(
        account_id, **body.model_dump(exclude_unset=True),
    )


@router.post("/{account_id}/payments", response_model=AccountResponse)
def record_payment(account_id: int, body: AccountPayment, current_user: CanManageAccounts, db: DbSession):
    """Money received against the balance; overpayment leaves a credit."""
    result = AccountService(db, current_user.tenant_id).record_payment(
        account_id, body.amount, body.description,
    )
    return result["account"]


@router.get("/{account_id}/verify")
def verify_account_ledger(account_id: int, current_user: CanManageAccounts, db: DbSession):
    result = AccountService(db, current_user.tenant_id).ledger_balance(account_id)
    return {**result, "ledger_balance": str(result["ledger_balance"]), "balance": str(result["balance"])}


@router.delete("/{account_id}")
def delete_account(account_id: int, current_user: RequireAdmin, db: DbSession):
    AccountService(db, current_user.tenant_id).delete_account(account_id)
    return success_response("Account deleted")
