from gouraan.repositories.base import BaseRepository, Page, normalize_paging

__all__ = ['BaseRepository', 'Page', 'normalize_paging']
