"""Remote publishers for source images."""

from .cloudinary import CloudinaryCredentials, CloudinaryPublisher

__all__ = ["CloudinaryCredentials", "CloudinaryPublisher"]
