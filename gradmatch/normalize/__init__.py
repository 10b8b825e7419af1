from .profile_enhancer import enhance_profile

__all__ = ["enhance_profile"]
