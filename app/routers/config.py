from fastapi import APIRouter, Depends
from app.config import ConfigStore
from app.dependencies import get_config_store
from app.models.schemas import ConfigResponse, ConfigUpdate, ConfigUpdateResponse, LLMUpdate

router = APIRouter(prefix="/api/config", tags=["Configuration"])


@router.get("", response_model=ConfigResponse)
async def get_config(config_store: ConfigStore = Depends(get_config_store)):
    """Current settings, without API keys"""
    return ConfigResponse(**config_store.public_view())


@router.put("", response_model=ConfigUpdateResponse)
async def update_config(
    update: ConfigUpdate,
    config_store: ConfigStore = Depends(get_config_store),
):
    """
    Change the LLM base URL and/or model.

    The change lives in memory only; empty fields keep their current value.
    """
    llm = config_store.update_llm(base_url=update.llm.base_url, model=update.llm.model)
    return ConfigUpdateResponse(llm=LLMUpdate(base_url=llm.base_url, model=llm.model))
