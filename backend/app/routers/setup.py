"""
Setup router for first-run initialization and CSV uploads.
"""
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Response
from sqlalchemy.orm import Session
from typing import Optional

from ..auth import get_current_user
from ..database import get_db
from ..models.user import User
from ..schemas.setup import InitializeRequest, SetupRequest, SetupResult
from ..services.import_service import ImportService, ACCOUNT_CSV_FIELDS, TRANSACTION_CSV_FIELDS

router = APIRouter(prefix="/setup", tags=["setup"])


def _csv_download(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/", response_model=SetupResult, status_code=status.HTTP_201_CREATED)
def run_setup(
    request: SetupRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """
    Create accounts from the setup wizard.

    Each account's transactions are posted to its opening balance in the
    same commit; if anything fails nothing is stored.
    """
    return ImportService.run_setup(db, user.id, request)


@router.post("/initialize", response_model=SetupResult)
def initialize(
    request: InitializeRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Create starting accounts and save manual exchange rates (upsert)"""
    return ImportService.initialize(db, user.id, request)


@router.post("/upload", response_model=SetupResult)
async def upload_csv(
    accounts: Optional[UploadFile] = File(None),
    transactions: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """
    Upload accounts.csv and/or transactions.csv.

    Files may be UTF-8 or EUC-KR encoded. Transactions are matched to
    accounts by name.
    """
    if accounts is None and transactions is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Upload at least one of accounts or transactions"
        )

    for upload in (accounts, transactions):
        if upload is not None and upload.filename and not upload.filename.lower().endswith('.csv'):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only CSV files are supported"
            )

    accounts_content = ImportService.decode_file_content(await accounts.read()) if accounts else None
    transactions_content = ImportService.decode_file_content(await transactions.read()) if transactions else None

    return ImportService.import_csv(
        db, user.id,
        accounts_content=accounts_content,
        transactions_content=transactions_content,
    )


@router.get("/template/accounts")
def accounts_template():
    """Header-only accounts CSV"""
    return _csv_download(ImportService.template_csv(ACCOUNT_CSV_FIELDS), "accounts_template.csv")


@router.get("/template/transactions")
def transactions_template():
    """Header-only transactions CSV"""
    return _csv_download(ImportService.template_csv(TRANSACTION_CSV_FIELDS), "transactions_template.csv")
