"""Services for external integrations and the tutoring pipeline."""

from studybuddy.services.s3 import s3_service
from studybuddy.services.pdf_processor import pdf_processor
from studybuddy.services.model_gateway import model_gateway

__all__ = ["s3_service", "pdf_processor", "model_gateway"]
