from fastapi import FastAPI

from owner_lookup.api.routes.history import router as history_router
from owner_lookup.api.routes.owner_info import router as owner_info_router


def health():
    return {"status": "ok"}


app = FastAPI(title="owner-lookup")

app.include_router(owner_info_router, prefix="/api")
app.include_router(history_router, prefix="/api")


@app.get("/health")
def health_route():
    return health()
