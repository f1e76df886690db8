
from sqlalchemy import Boolean, Column, Integer, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from inkwell.db.session import Base
from inkwell.models.category import post_categories

class Post(Base):
    __tablename__ = "posts"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=True)
    cover_image = Column(Text, nullable=True)
    published = Column(Boolean, nullable=False, default=False)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    author = relationship("User", lazy="joined")
    # link rows are removed by ON DELETE CASCADE, not by the ORM
    categories = relationship(
        "Category",
        secondary=post_categories,
        order_by="Category.id",
        viewonly=True,
    )
