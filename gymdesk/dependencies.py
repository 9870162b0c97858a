from typing import Annotated

import aiosqlite
from fastapi import Depends

from gymdesk.database import get_db
from gymdesk.imports.repository import RepositorySet
from gymdesk.imports.service import ImportService

DBConn = Annotated[aiosqlite.Connection, Depends(get_db)]


def get_repositories(db: DBConn) -> RepositorySet:
    return RepositorySet.from_connection(db)


RepositoriesDep = Annotated[RepositorySet, Depends(get_repositories)]


def get_import_service(repos: RepositoriesDep) -> ImportService:
    return ImportService(repos)


ImportServiceDep = Annotated[ImportService, Depends(get_import_service)]
