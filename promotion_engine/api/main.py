from fastapi import FastAPI
from promotion_engine.api.routes.history import router as history_router

app = FastAPI(title="Promotion Engine API")

@app.get("/health")
def health():
    return {"status": "ok"}

app.include_router(history_router)
