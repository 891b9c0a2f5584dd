# Import all the models, so that Base has them before being
# imported by create_all or Alembic
from app.db.base_class import Base  # noqa
from app.models.customer import Customer  # noqa
from app.models.destination import Destination, Plan  # noqa
from app.models.order import Order  # noqa
