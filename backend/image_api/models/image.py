"""
Image metadata models.

The image bytes live at the provider; these tables are an index of what was
uploaded and the delivery URL of every variant.

Lifecycle:
1. Image uploaded to the provider -> provider assigns image_id
2. One Image row and one ImageVariant row per registry variant are
   committed together
3. Rows are never updated; deletion removes the image and, by cascade,
   its variants
"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from image_api.models.base import Base


class Image(Base):
    """
    Image metadata model.

    Attributes:
        id: Internal row id
        image_id: Provider-assigned image ID (unique)
        file_name: Caller-supplied or generated label
        description: Optional free text
        mime_type: MIME type of the uploaded file
        size_in_bytes: File size in bytes
        created_at: Insert time, assigned by the database
    """
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Provider ID - what clients know the image by
    image_id = Column(String, nullable=False, unique=True)

    file_name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    mime_type = Column(String, nullable=False)
    size_in_bytes = Column(Integer, nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    variants = relationship(
        "ImageVariant",
        back_populates="image",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        # Listing is always newest first
        Index('ix_images_created_at', 'created_at'),
    )
    # Load created_at on insert; lazy refresh is not allowed under asyncio
    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<Image(id={self.id}, image_id={self.image_id}, file_name={self.file_name})>"


class ImageVariant(Base):
    """
    Delivery URL of one variant of an image.

    Attributes:
        id: Internal row id
        image_id: FK to images.id (the internal row id, not the provider ID)
        variant_name: Variant registry name
        url: Fully-qualified delivery URL
    """
    __tablename__ = "image_variants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    image_id = Column(
        Integer,
        ForeignKey("images.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    variant_name = Column(String, nullable=False)
    url = Column(String, nullable=False)

    image = relationship("Image", back_populates="variants")

    __table_args__ = (
        UniqueConstraint('image_id', 'variant_name', name='uq_image_variants_image_variant'),
    )

    def __repr__(self):
        return f"<ImageVariant(image_id={self.image_id}, variant={self.variant_name})>"
