"""Folder and category endpoints."""

from fastapi import APIRouter, Depends, status

from remaimber.core.models import Category, Folder, generate_id
from remaimber.db.store import SQLiteStore
from remaimber.web.dependencies import get_store
from remaimber.web.schemas import (
    CategoryCreate,
    CategoryResponse,
    FolderCreate,
    FolderResponse,
)

router = APIRouter(prefix="/api", tags=["hierarchy"])


@router.post("/folders", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(request: FolderCreate, store: SQLiteStore = Depends(get_store)) -> FolderResponse:
    """Create a folder."""
    folder = Folder(id=generate_id(), name=request.name)
    store.save_folder(folder)
    return FolderResponse(id=folder.id, name=folder.name)


@router.get("/folders", response_model=list[FolderResponse])
async def list_folders(store: SQLiteStore = Depends(get_store)) -> list[FolderResponse]:
    """List every folder by name, with its mastery."""
    return [
        FolderResponse(id=f.id, name=f.name, mastery=store.get_folder_mastery(f.id))
        for f in store.list_folders()
    ]


@router.get("/folders/{folder_id}", response_model=FolderResponse)
async def get_folder(folder_id: str, store: SQLiteStore = Depends(get_store)) -> FolderResponse:
    """Get a folder with the mastery of every question underneath it."""
    folder = store.get_folder(folder_id)
    return FolderResponse(id=folder.id, name=folder.name, mastery=store.get_folder_mastery(folder.id))


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(request: CategoryCreate, store: SQLiteStore = Depends(get_store)) -> CategoryResponse:
    """Create a category, optionally inside a folder."""
    category = Category(id=generate_id(), name=request.name, folder_id=request.folder_id)
    store.save_category(category)
    return CategoryResponse(id=category.id, name=category.name, folder_id=category.folder_id)


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    folder_id: str | None = None,
    store: SQLiteStore = Depends(get_store),
) -> list[CategoryResponse]:
    """List categories, optionally only those inside one folder."""
    if folder_id is not None:
        store.get_folder(folder_id)
    return [
        CategoryResponse(
            id=c.id,
            name=c.name,
            folder_id=c.folder_id,
            mastery=store.get_category_mastery(c.id),
        )
        for c in store.list_categories(folder_id)
    ]


@router.get("/categories/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: str, store: SQLiteStore = Depends(get_store)) -> CategoryResponse:
    """Get a category with its flattened mastery."""
    category = store.get_category(category_id)
    return CategoryResponse(
        id=category.id,
        name=category.name,
        folder_id=category.folder_id,
        mastery=store.get_category_mastery(category.id),
    )
