"""Carousel rotation for the feed grid."""

from .scheduler import CarouselScheduler, CarouselSlot, chunk

__all__ = ["CarouselScheduler", "CarouselSlot", "chunk"]
