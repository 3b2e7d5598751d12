# docassist/db/base.py
from sqlalchemy.orm import declarative_base

Base = declarative_base()

def load_all_models():
    # Import models ONLY for side-effect registration
    import docassist.db.models.document  # noqa
    import docassist.db.models.chunks  # noqa
    import docassist.db.models.user_role  # noqa
    import docassist.db.models.conversation  # noqa
