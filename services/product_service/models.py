from sqlalchemy import Boolean, CheckConstraint, Column, Date, Integer, LargeBinary, Numeric, String, Text
from shared.config.database import Base

class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        # ids are never reused, so index documents keyed by id stay unambiguous
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    brand = Column(String(255), nullable=True)
    category = Column(String(255), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    product_available = Column(Boolean, nullable=False, default=True)
    release_date = Column(Date, nullable=True)

    image_name = Column(String(255), nullable=True)
    image_type = Column(String(100), nullable=True)
    image_data = Column(LargeBinary, nullable=True)

    # Bumped on every UPDATE; a concurrent writer holding a stale row gets StaleDataError
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
