"""Services for ShelfScope backend."""
from .proxy_relay import ProxyRelay
from .reader import paginate, advance, progress_percent, ReaderSession, ReaderState, ReaderStateError
from .listening import ListeningSession, Seekable, format_time, playback_percent, seek_time
from .catalog import CatalogError, GutendexClient, LibriVoxClient, OpenLibraryClient
from .book_loader import BookLoader
from .library_store import LibraryStore, LibraryStoreError

__all__ = ['ProxyRelay', 'paginate', 'advance', 'progress_percent', 'ReaderSession', 'ReaderState', 'ReaderStateError', 'ListeningSession', 'Seekable', 'format_time', 'playback_percent', 'seek_time', 'CatalogError', 'GutendexClient', 'LibriVoxClient', 'OpenLibraryClient', 'BookLoader', 'LibraryStore', 'LibraryStoreError']
