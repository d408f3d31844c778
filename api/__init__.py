"""
Translation server client: wire models, REST client and SSE progress channel.
"""

from .models import FileMetadata, UploadResult, TranslationAck

__all__ = [
    'FileMetadata',
    'UploadResult',
    'TranslationAck',
]
