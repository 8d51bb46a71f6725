from fastapi import FastAPI, Depends, HTTPException, Header, Response
from typing import List, Optional
from .config import settings
from .clients.catalog_client import CatalogClient, CatalogError
from .models import PlaybackProgress, PlaybackUpdate
from .progress import PlaybackProgressStore, format_time
from .storage import StorageWriteError
from .tracker import ProgressTracker

app = FastAPI(title="StreamTV Progress")
store: Optional[PlaybackProgressStore] = None
catalog: Optional[CatalogClient] = None

def get_token(x_token: Optional[str] = Header(None, alias="X-Token")):
    if settings.HTTP_SERVER_TOKEN and x_token != settings.HTTP_SERVER_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid token")

def get_store() -> PlaybackProgressStore:
    if not store:
        raise HTTPException(status_code=503, detail="Store not ready")
    return store

def _dump(record: PlaybackProgress) -> dict:
    return record.to_storage()

@app.get("/healthz")
def healthz():
    if not store:
        return {"status": "starting"}
    return {"status": "ok", "records": len(store.get_all())}

@app.get("/progress", dependencies=[Depends(get_token)])
def list_progress(s: PlaybackProgressStore = Depends(get_store)) -> List[dict]:
    return [_dump(r) for r in s.get_all()]

@app.get("/progress/{content_id}", dependencies=[Depends(get_token)])
def get_progress(content_id: int, episode_id: Optional[int] = None, s: PlaybackProgressStore = Depends(get_store)):
    record = s.get(content_id, episode_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No progress recorded")
    return _dump(record)

@app.put("/progress", dependencies=[Depends(get_token)])
def save_progress(progress: PlaybackProgress, s: PlaybackProgressStore = Depends(get_store)):
    try:
        s.save(progress)
    except StorageWriteError as e:
        raise HTTPException(status_code=503, detail=f"Could not persist progress: {e}")
    return _dump(progress)

@app.delete("/progress/{content_id}", status_code=204, dependencies=[Depends(get_token)])
def remove_progress(content_id: int, episode_id: Optional[int] = None, s: PlaybackProgressStore = Depends(get_store)):
    try:
        s.remove(content_id, episode_id)
    except StorageWriteError as e:
        raise HTTPException(status_code=503, detail=f"Could not persist progress: {e}")
    return Response(status_code=204)

@app.get("/continue-watching", dependencies=[Depends(get_token)])
def continue_watching(s: PlaybackProgressStore = Depends(get_store)):
    return [
        {
            **_dump(r),
            "remainingTime": format_time(r.remaining_seconds),
            "subtitle": r.subtitle,
        }
        for r in s.get_continue_watching()
    ]

@app.get("/playback/{content_id}", dependencies=[Depends(get_token)])
def resume_position(content_id: int, episode_id: Optional[int] = None, s: PlaybackProgressStore = Depends(get_store)):
    return {"position": ProgressTracker(s).resume_position(content_id, episode_id)}

@app.put("/playback/{content_id}", dependencies=[Depends(get_token)])
async def report_playback(content_id: int, update: PlaybackUpdate, s: PlaybackProgressStore = Depends(get_store)):
    if not catalog:
        raise HTTPException(status_code=503, detail="Catalog not configured")
    if update.episode_id and update.season is None:
        raise HTTPException(status_code=422, detail="season is required with episodeId")

    content = await catalog.get_content(content_id)
    if content is None:
        raise HTTPException(status_code=404, detail="Content not found")

    episode = None
    if update.episode_id:
        try:
            episodes = await catalog.get_episodes(content.name or "", update.season)
        except CatalogError as e:
            raise HTTPException(status_code=502, detail=str(e))
        episode = next((ep for ep in episodes if ep.id == update.episode_id), None)
        if episode is None:
            raise HTTPException(status_code=404, detail="Episode not found")

    try:
        record = ProgressTracker(s).record(content, update.current_time, update.duration, episode)
    except StorageWriteError as e:
        raise HTTPException(status_code=503, detail=f"Could not persist progress: {e}")
    if record is None:
        return Response(status_code=204)
    return _dump(record)
