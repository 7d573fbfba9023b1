from .connection import (
    get_db, get_engine, get_session_factory, make_session_factory, init_db, Base
)

# Import profile models to ensure they are registered with Base
from .profile_models import (
    ProfessionalDB, SpecialtyDB, CertificationDB, PortfolioProjectDB,
    ProjectImageDB, BackgroundCheckDB, SocialAccountDB, AddressDB,
    CostType, ImageKind, BackgroundCheckType, SocialPlatform, AddressLabel,
)

__all__ = [
    'get_db', 'get_engine', 'get_session_factory', 'make_session_factory', 'init_db', 'Base',
    # Profile models
    'ProfessionalDB', 'SpecialtyDB', 'CertificationDB', 'PortfolioProjectDB',
    'ProjectImageDB', 'BackgroundCheckDB', 'SocialAccountDB', 'AddressDB',
    # Enums
    'CostType', 'ImageKind', 'BackgroundCheckType', 'SocialPlatform', 'AddressLabel',
]
