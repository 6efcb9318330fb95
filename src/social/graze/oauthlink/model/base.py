from sqlalchemy import MetaData, String, orm
from sqlalchemy.orm import mapped_column

from typing_extensions import Annotated

str32 = Annotated[str, 32]
str512 = Annotated[str, 512]
guidpk = Annotated[str, mapped_column(String(512), primary_key=True)]

# Constraint names are matched when translating integrity errors, keep them stable.
naming_convention = {
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(orm.DeclarativeBase):
    metadata = MetaData(naming_convention=naming_convention)

    type_annotation_map = {
        str32: String(32),
        str512: String(512),
        guidpk: String(512),
    }
