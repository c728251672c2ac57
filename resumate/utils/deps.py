from typing import Type
from fastapi import Request
from resumate.services.converter import DocumentConverter
from resumate.services.generator import ResumeReviewGenerator
from resumate.services.reconstructor import DocumentReconstructor
from resumate.services.repository import ResumeRepository
from resumate.services.storage import CloudinaryStorage


def get_converter(request: Request) -> DocumentConverter:
    return request.app.state.converter


def get_reconstructor(request: Request) -> DocumentReconstructor:
    return request.app.state.reconstructor


def get_repository(request: Request) -> ResumeRepository:
    return request.app.state.repository


def get_storage(request: Request) -> CloudinaryStorage:
    return request.app.state.storage


def get_oracle() -> Type[ResumeReviewGenerator]:
    return ResumeReviewGenerator
