"""
Tool catalog and credential management endpoints
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from ..config import Config, create_example_credentials_file, load_credentials
from ..datasource.base import DataSource
from ..exceptions import ConfigurationError
from .dependencies import get_config, get_data_source
from .models import (
    CredentialsExampleRequest,
    CredentialsExampleResponse,
    CredentialsValidateRequest,
    CredentialsValidateResponse,
    ToolInfo,
    ToolList,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["tools"])


@router.get("/tools", response_model=ToolList)
def list_tools(data_source: DataSource = Depends(get_data_source)):
    """List the tools available to analysis steps"""
    tools = [
        ToolInfo(
            name=capability.name,
            description=capability.description,
            parameters=capability.parameters.to_json_schema(),
        )
        for capability in data_source.capabilities()
    ]
    return ToolList(tools=tools, total=len(tools))


@router.post("/credentials/validate", response_model=CredentialsValidateResponse)
def validate_credentials(
    request: CredentialsValidateRequest,
    config: Config = Depends(get_config),
):
    """Check that AWS credentials can be loaded"""
    try:
        credentials = load_credentials(
            request.path or config.credentials.path, config.credentials.default_region
        )
    except ConfigurationError as e:
        logger.error(f"Credential validation failed: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Credentials valid for region {credentials.region}")
    return CredentialsValidateResponse(
        valid=True,
        region=credentials.region,
        access_key=credentials.masked_access_key(),
    )


@router.post("/credentials/example", response_model=CredentialsExampleResponse, status_code=201)
def create_example_credentials(request: CredentialsExampleRequest):
    """Write a credentials template to fill in"""
    target = Path(request.path)
    if target.exists() and not request.overwrite:
        raise HTTPException(status_code=409, detail=f"{target} already exists")

    try:
        path = create_example_credentials_file(target)
    except OSError as e:
        logger.error(f"Failed to create credentials file: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create credentials file: {str(e)}")

    return CredentialsExampleResponse(
        path=str(path),
        message="Example credentials file created. Edit it with your AWS credentials.",
    )
