# Import every model so they register with Base.metadata
from vaccine_registry.models.users import User  # noqa: F401
from vaccine_registry.models.patients import Patient  # noqa: F401
from vaccine_registry.models.vaccines import Vaccine  # noqa: F401
from vaccine_registry.models.vials import Vial  # noqa: F401
from vaccine_registry.models.administrations import Administration  # noqa: F401
from vaccine_registry.models.wastage import Wastage  # noqa: F401
