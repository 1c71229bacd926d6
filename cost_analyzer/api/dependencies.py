"""
Per-request construction of the analysis components
"""

import logging

from fastapi import Depends, HTTPException

from ..agent.base import BaseAgent
from ..agent.factory import AgentFactory
from ..config import Config, load_config
from ..datasource.aws_tools import AwsToolsDataSource
from ..datasource.base import DataSource
from ..rendering.base import ChartRenderer
from ..rendering.vegalite import VegaLiteRenderer

logger = logging.getLogger(__name__)


def get_config() -> Config:
    """Fresh configuration for every request"""
    try:
        return load_config()
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        raise HTTPException(status_code=500, detail=f"Invalid configuration: {str(e)}")


def get_agent(config: Config = Depends(get_config)) -> BaseAgent:
    try:
        return AgentFactory.create(config)
    except ValueError as e:
        logger.error(f"Could not create model client: {e}")
        raise HTTPException(status_code=500, detail=f"Could not create model client: {str(e)}")


def get_data_source() -> DataSource:
    return AwsToolsDataSource()


def get_renderer(config: Config = Depends(get_config)) -> ChartRenderer:
    return VegaLiteRenderer(scale=config.rendering.scale)
