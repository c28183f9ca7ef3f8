"""Review pipeline configuration routes."""

from fastapi import APIRouter, Response

from ideaflow.dependencies import CurrentActor, DBSession
from ideaflow.models.pipeline import PipelineCreate, PipelineUpdate
from ideaflow.services import pipeline_config

router = APIRouter(tags=["Pipelines"])


@router.get("/pipelines")
async def list_pipelines(actor: CurrentActor, db: DBSession) -> list[dict]:
    return await pipeline_config.list_pipelines(db, actor)


@router.post("/pipelines", status_code=201)
async def create_pipeline(body: PipelineCreate, actor: CurrentActor, db: DBSession) -> dict:
    pipeline_id = await pipeline_config.create_pipeline(db, actor, body)
    return await pipeline_config.get_pipeline(db, actor, pipeline_id)


@router.get("/pipelines/{pipeline_id}")
async def get_pipeline(pipeline_id: str, actor: CurrentActor, db: DBSession) -> dict:
    return await pipeline_config.get_pipeline(db, actor, pipeline_id)


@router.put("/pipelines/{pipeline_id}")
async def update_pipeline(pipeline_id: str, body: PipelineUpdate, actor: CurrentActor, db: DBSession) -> dict:
    await pipeline_config.update_pipeline(db, actor, pipeline_id, body)
    return await pipeline_config.get_pipeline(db, actor, pipeline_id)


@router.delete("/pipelines/{pipeline_id}", status_code=204)
async def delete_pipeline(pipeline_id: str, actor: CurrentActor, db: DBSession) -> Response:
    await pipeline_config.delete_pipeline(db, actor, pipeline_id)
    return Response(status_code=204)
