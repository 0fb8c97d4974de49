from .session import PhotoSession, SynchronizedRegistry

__all__ = ['PhotoSession', 'SynchronizedRegistry']
