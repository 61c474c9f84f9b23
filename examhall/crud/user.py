from examhall.crud.base import CRUDBase
from examhall.models.user import User

class CRUDUser(CRUDBase[User, dict, dict]):
    pass

user = CRUDUser(User)
