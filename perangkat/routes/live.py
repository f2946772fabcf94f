import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from perangkat.database import SessionLocal
from perangkat.store import COLLECTIONS, DocumentStore, change_feed

logger = logging.getLogger(__name__)

router = APIRouter()

@router.websocket("/ws/{collection}")
async def watch_collection(websocket: WebSocket, collection: str):
    """Kirim isi koleksi saat terhubung, lalu setiap kali koleksi berubah."""
    if collection not in COLLECTIONS:
        await websocket.close(code=4404)
        return
    if not websocket.session.get("user_id"):
        await websocket.close(code=4401)
        return

    await websocket.accept()
    queue: asyncio.Queue = asyncio.Queue()
    unsubscribe = change_feed.subscribe(collection, queue.put)
    receiver = None
    try:
        async with SessionLocal() as session:
            rows = await DocumentStore(session).find(collection)
            await websocket.send_json({"collection": collection, "docs": [r.as_dict() for r in rows]})

        receiver = asyncio.create_task(websocket.receive_text())
        while True:
            getter = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if receiver in done:
                getter.cancel()
                receiver.result()  # raises WebSocketDisconnect
                receiver = asyncio.create_task(websocket.receive_text())
                continue
            await websocket.send_json({"collection": collection, "docs": getter.result()})
    except WebSocketDisconnect:
        logger.debug("Watcher for %s disconnected", collection)
    finally:
        unsubscribe()
        if receiver and not receiver.done():
            receiver.cancel()
