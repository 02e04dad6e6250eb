import logging
import os
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from starlette.concurrency import run_in_threadpool

import database
from accounts import ACCOUNT_UPDATED, AccountService
from auth import create_access_token, get_current_user, to_obj_id
from database import ensure_indexes, get_db
from errors import DirectoryError, UnsupportedMediaType, ValidationFailed
from ranking import RankingEngine
from repositories import ReviewRepository, StoreRepository, UserRepository
from schemas import LoginRequest, ReviewRequest, TokenResponse
from stores import StoreService, store_fields
from uploads import PhotoIntake

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# App and CORS
app = FastAPI(title="Store Directory API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

PRIVATE_USER_FIELDS = ("password_hash", "reset_password_token", "reset_password_expires")

# Helpers

def sanitize(value: Any) -> Any:
    """Make a Mongo document JSON-friendly: `_id` becomes `id`, ObjectIds become strings."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [sanitize(v) for v in value]
    if isinstance(value, dict):
        d = {k: sanitize(v) for k, v in value.items()}
        if "_id" in d:
            d["id"] = d.pop("_id")
        return d
    return value


def public_user(doc: Dict) -> Dict:
    return sanitize({k: v for k, v in doc.items() if k not in PRIVATE_USER_FIELDS})


def get_photo_intake() -> PhotoIntake:
    return PhotoIntake()


def get_account_service(db: Database = Depends(get_db)) -> AccountService:
    return AccountService(UserRepository(db))


def get_store_service(db: Database = Depends(get_db)) -> StoreService:
    return StoreService(StoreRepository(db), UserRepository(db), ReviewRepository(db))


def get_ranking_engine(db: Database = Depends(get_db)) -> RankingEngine:
    return RankingEngine(db)


async def take_photo(photo: Optional[UploadFile], intake: PhotoIntake) -> Optional[str]:
    """Run the optional upload through the intake; None when nothing was sent."""
    if photo is None:
        return None
    content = await photo.read()
    return await run_in_threadpool(intake.process, content, photo.content_type)


# Error handlers

@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder({"detail": exc.messages, "body": sanitize(exc.body)}),
    )


@app.exception_handler(UnsupportedMediaType)
async def unsupported_media_handler(request: Request, exc: UnsupportedMediaType):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(DirectoryError)
async def directory_error_handler(request: Request, exc: DirectoryError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
def create_indexes():
    if database.db is None:
        logger.warning("Database not configured; skipping index creation")
        return
    ensure_indexes(database.db)


# Auth Routes
@app.post("/auth/register", response_model=TokenResponse)
async def register(
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    password_confirm: str = Form(""),
    photo: Optional[UploadFile] = File(None),
    accounts: AccountService = Depends(get_account_service),
    intake: PhotoIntake = Depends(get_photo_intake),
):
    filename = await take_photo(photo, intake)
    user = await run_in_threadpool(accounts.register, name, email, password, password_confirm, filename)
    token = create_access_token({"sub": str(user["_id"])})
    return TokenResponse(access_token=token, user=public_user(user))


@app.post("/auth/login", response_model=TokenResponse)
def login(payload: LoginRequest, accounts: AccountService = Depends(get_account_service)):
    user = accounts.authenticate(payload.email, payload.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    token = create_access_token({"sub": str(user["_id"])})
    return TokenResponse(access_token=token, user=public_user(user))


# Account Routes
@app.get("/account")
def account(current_user=Depends(get_current_user)):
    return public_user(current_user)


@app.post("/account")
async def update_account(
    name: str = Form(""),
    email: str = Form(""),
    photo: Optional[UploadFile] = File(None),
    current_user=Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
    intake: PhotoIntake = Depends(get_photo_intake),
):
    filename = await take_photo(photo, intake)
    user = await run_in_threadpool(accounts.update, current_user["_id"], name, email, filename)
    return {"message": ACCOUNT_UPDATED, "user": public_user(user)}


# Store Routes
@app.get("/api/stores")
def list_stores(page: int = Query(1, ge=1), db: Database = Depends(get_db)):
    result = StoreRepository(db).list_page(page)
    result["stores"] = sanitize(result["stores"])
    return result


@app.post("/api/stores")
async def create_store(
    name: str = Form(""),
    description: Optional[str] = Form(None),
    tags: Optional[List[str]] = Form(None),
    address: str = Form(""),
    lng: Optional[float] = Form(None),
    lat: Optional[float] = Form(None),
    photo: Optional[UploadFile] = File(None),
    current_user=Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
    intake: PhotoIntake = Depends(get_photo_intake),
):
    filename = await take_photo(photo, intake)
    fields = store_fields(name, description, tags, address, lng, lat)
    store = await run_in_threadpool(stores.create, current_user["_id"], fields, filename)
    return {"message": f"Successfully created {store['name']}.", "store": sanitize(store)}


@app.put("/api/stores/{store_id}")
async def update_store(
    store_id: str,
    name: str = Form(""),
    description: Optional[str] = Form(None),
    tags: Optional[List[str]] = Form(None),
    address: str = Form(""),
    lng: Optional[float] = Form(None),
    lat: Optional[float] = Form(None),
    photo: Optional[UploadFile] = File(None),
    current_user=Depends(get_current_user),
    stores: StoreService = Depends(get_store_service),
    intake: PhotoIntake = Depends(get_photo_intake),
):
    oid = to_obj_id(store_id)
    filename = await take_photo(photo, intake)
    fields = store_fields(name, description, tags, address, lng, lat)
    store = await run_in_threadpool(stores.update, oid, current_user["_id"], fields, filename)
    return {"message": f"Successfully updated {store['name']}.", "store": sanitize(store)}


@app.get("/api/stores/{slug}")
def get_store(slug: str, stores: StoreService = Depends(get_store_service)):
    return sanitize(stores.get_by_slug(slug))


@app.post("/api/stores/{store_id}/heart")
def heart_store(store_id: str, current_user=Depends(get_current_user), stores: StoreService = Depends(get_store_service)):
    oid = to_obj_id(store_id)
    user = stores.toggle_heart(current_user["_id"], oid)
    hearts = user.get("hearts", [])
    return {"hearted": oid in hearts, "hearts": sanitize(hearts)}


@app.get("/api/hearts")
def hearted_stores(current_user=Depends(get_current_user), stores: StoreService = Depends(get_store_service)):
    return sanitize(stores.hearted(current_user))


@app.post("/api/reviews/{store_id}")
def add_review(store_id: str, payload: ReviewRequest, current_user=Depends(get_current_user), stores: StoreService = Depends(get_store_service)):
    review = stores.add_review(current_user["_id"], to_obj_id(store_id), payload.text, payload.rating)
    return {"message": "Review saved!", "review": sanitize(review)}


# Tags and ranking
@app.get("/api/tags")
def list_tags(ranking: RankingEngine = Depends(get_ranking_engine), db: Database = Depends(get_db)):
    tags = [{"tag": t["_id"], "count": t["count"]} for t in ranking.tag_counts()]
    stores = StoreRepository(db).find_by_tag(None)
    return {"tags": tags, "stores": sanitize(stores)}


@app.get("/api/tags/{tag}")
def stores_by_tag(tag: str, ranking: RankingEngine = Depends(get_ranking_engine), db: Database = Depends(get_db)):
    tags = [{"tag": t["_id"], "count": t["count"]} for t in ranking.tag_counts()]
    stores = StoreRepository(db).find_by_tag(tag)
    return {"tag": tag, "tags": tags, "stores": sanitize(stores)}


@app.get("/api/top")
def top_stores(ranking: RankingEngine = Depends(get_ranking_engine)):
    return sanitize(ranking.top_stores())


# Search
@app.get("/api/search")
def search_stores(q: str = Query(..., min_length=1), db: Database = Depends(get_db)):
    return sanitize(StoreRepository(db).search(q))


@app.get("/api/near")
def near_stores(lng: float, lat: float, db: Database = Depends(get_db)):
    return sanitize(StoreRepository(db).near(lng, lat))


# Utility endpoints
@app.get("/")
def root():
    return {"message": "Store Directory API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        if database.db is not None:
            response["database"] = "✅ Available"
            response["connection_status"] = "Connected"
            try:
                response["collections"] = database.db.list_collection_names()[:10]
                response["database"] = "✅ Connected & Working"
            except Exception as e:
                response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"
    response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
    response["database_name"] = "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set"
    return response


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
