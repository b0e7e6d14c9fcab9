"""
API routes for client submissions and their documents
"""
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from ..dependencies import Services, get_services, require_user
from ..models.common import Identity
from ..models.submission import ClientDocument, ClientSubmission, SubmissionRequest, UploadedFile
from ..models.user import PlatformUser
from ..services.errors import DocumentError, InvalidInputError, SubmissionError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["submissions"])


async def _check_client_access(client_id: Identity, user: PlatformUser, services: Services) -> None:
    """Clients see their own submissions; approved providers review everyone's"""
    if str(client_id) == str(user.id):
        return
    if await services.providers.is_approved_provider(user.id):
        return
    raise HTTPException(status_code=403, detail="Submissions can only be accessed by their client")


async def _load_submission(submission_id: Identity, user: PlatformUser, services: Services) -> ClientSubmission:
    submission = await services.submissions.get_submission(submission_id)
    if submission is None:
        raise HTTPException(status_code=404, detail=f"Submission not found: {submission_id}")
    await _check_client_access(submission.client_id, user, services)
    return submission


@router.post("/submissions")
async def open_submission(
    request: SubmissionRequest,
    user: PlatformUser = Depends(require_user),
    services: Services = Depends(get_services)
):
    """
    Reuse the current user's pending submission for the program, or create one
    """
    client_id = user.id if request.client_id is None else request.client_id
    if str(client_id) != str(user.id):
        raise HTTPException(status_code=403, detail="Submissions can only be opened for yourself")

    try:
        submission_id, created = await services.submissions.ensure_pending_submission(
            client_id, request.program_id
        )
    except SubmissionError as e:
        raise HTTPException(status_code=500, detail=e.message)

    if created:
        await services.audit.log_action(
            "CLIENT", "create_submission", f"submission {submission_id} for program {request.program_id}"
        )
    return {"submission_id": submission_id, "created": created}


@router.get("/submissions/pending")
async def get_pending_submission(
    program_id: str = Query(..., description="Program identity"),
    client_id: Optional[str] = Query(None, description="Applicant identity, defaults to the current user"),
    user: PlatformUser = Depends(require_user),
    services: Services = Depends(get_services)
):
    """
    Get the pending submission of a client for a program
    """
    client_id = client_id or user.id
    await _check_client_access(client_id, user, services)

    submission_id = await services.submissions.find_pending_submission(client_id, program_id)
    if submission_id is None:
        raise HTTPException(status_code=404, detail="No pending submission")
    return {"submission_id": submission_id}


@router.get("/submissions/client/{client_id}", response_model=List[ClientSubmission])
async def get_client_submissions(
    client_id: str,
    user: PlatformUser = Depends(require_user),
    services: Services = Depends(get_services)
):
    """
    Get every submission of a client, newest first
    """
    await _check_client_access(client_id, user, services)
    return await services.submissions.fetch_client_submissions(client_id)


@router.post("/submissions/{submission_id}/documents", status_code=201)
async def upload_document(
    submission_id: str,
    doc_type: str = Form(..., description="Kind of document"),
    extracted_data: Optional[str] = Form(None, description="JSON object extracted from the file"),
    bucket: Optional[str] = Form(None, description="Storage bucket override"),
    file: UploadFile = File(..., description="Document to upload"),
    user: PlatformUser = Depends(require_user),
    services: Services = Depends(get_services)
):
    """
    Upload a document and attach it to a submission
    """
    await _load_submission(submission_id, user, services)

    payload = None
    if extracted_data:
        try:
            payload = json.loads(extracted_data)
        except ValueError:
            raise HTTPException(status_code=400, detail="extracted_data must be valid JSON")

    content = await file.read()
    upload = UploadedFile(filename=file.filename or "", content=content, content_type=file.content_type)

    try:
        document_id = await services.documents.add_document(
            submission_id, doc_type, upload, payload, bucket=bucket
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except DocumentError as e:
        logger.error(f"Failed to upload document for submission {submission_id}: {e}")
        raise HTTPException(status_code=500, detail=e.message)

    await services.audit.log_action("CLIENT", "upload_document", f"document {document_id} ({doc_type})")
    return {"document_id": document_id}


@router.get("/submissions/{submission_id}/documents", response_model=List[ClientDocument])
async def get_documents(
    submission_id: str,
    user: PlatformUser = Depends(require_user),
    services: Services = Depends(get_services)
):
    """
    Get the documents of a submission, newest first
    """
    await _load_submission(submission_id, user, services)
    try:
        return await services.documents.fetch_documents(submission_id)
    except DocumentError as e:
        raise HTTPException(status_code=500, detail=e.message)


@router.delete("/documents/{document_id}")
async def delete_document(
    document_id: str,
    bucket: Optional[str] = Query(None, description="Storage bucket override"),
    storage_path: Optional[str] = Query(None, description="Path of the stored file"),
    user: PlatformUser = Depends(require_user),
    services: Services = Depends(get_services)
):
    """
    Delete a document record and its stored file
    """
    try:
        document = await services.documents.get_document(document_id)
    except DocumentError as e:
        raise HTTPException(status_code=500, detail=e.message)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document not found: {document_id}")
    await _load_submission(document.submission_id, user, services)

    try:
        await services.documents.delete_document(document, bucket, storage_path)
    except DocumentError as e:
        raise HTTPException(status_code=500, detail=e.message)

    await services.audit.log_action("CLIENT", "delete_document", f"document {document_id}")
    return {"message": f"Document {document_id} deleted successfully"}
