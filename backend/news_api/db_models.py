# Import every model so Base.metadata knows all tables (create_all, alembic autogenerate).
from .users.models import User  # noqa: F401
from .categories.models import Category  # noqa: F401
from .news.models import News  # noqa: F401
