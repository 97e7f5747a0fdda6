from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKeyConstraint, Index, Integer, JSON, Numeric, PrimaryKeyConstraint, String, Text, UniqueConstraint, Uuid, func, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import datetime
import decimal
import uuid

from .db_enums import UserRole, UserStatus, TutorStatus, TuitionStatus, ApplicationStatus, PaymentStatus


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    return Enum(*enum_cls.get_all_names(), name=name)


class Users(Base):
    __tablename__ = 'users'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='users_pkey'),
        UniqueConstraint('email', name='users_email_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255))
    password: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(_enum(UserRole, 'user_role'), default=UserRole.STUDENT.value)
    status: Mapped[str] = mapped_column(_enum(UserStatus, 'user_status'), default=UserStatus.ACTIVE.value)
    name: Mapped[Optional[str]] = mapped_column(Text)
    photo_url: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, server_default=func.now())

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value


class Tutors(Base):
    __tablename__ = 'tutors'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='tutors_pkey'),
        UniqueConstraint('email', name='tutors_email_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(Text)
    photo_url: Mapped[Optional[str]] = mapped_column(Text)
    subjects: Mapped[list] = mapped_column(JSON, default=list)
    qualifications: Mapped[Optional[str]] = mapped_column(Text)
    experience: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(_enum(TutorStatus, 'tutor_status'), default=TutorStatus.PENDING.value)
    rating: Mapped[decimal.Decimal] = mapped_column(Numeric(2, 1), default=decimal.Decimal('0.0'))
    review_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, server_default=func.now())

    reviews: Mapped[list['Reviews']] = relationship('Reviews', back_populates='tutor', cascade='all, delete-orphan')


class Tuitions(Base):
    __tablename__ = 'tuitions'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='tuitions_pkey'),
        Index('idx_tuitions_student_email', 'student_email'),
        Index('idx_tuitions_status', 'status')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_email: Mapped[str] = mapped_column(String(255))
    subject: Mapped[str] = mapped_column(Text)
    class_level: Mapped[str] = mapped_column(Text)
    location: Mapped[str] = mapped_column(Text)
    salary: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))
    days_per_week: Mapped[Optional[int]] = mapped_column(Integer)
    details: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(_enum(TuitionStatus, 'tuition_status'), default=TuitionStatus.PENDING.value)
    # legacy: emails of tutors that applied, kept in sync but not read by the workflow
    applied_tutors: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, server_default=func.now())

    applications: Mapped[list['Applications']] = relationship('Applications', back_populates='tuition', cascade='all, delete-orphan', passive_deletes=True)


class Applications(Base):
    __tablename__ = 'applications'
    __table_args__ = (
        ForeignKeyConstraint(['tuition_id'], ['tuitions.id'], ondelete='CASCADE', name='applications_tuition_id_fkey'),
        PrimaryKeyConstraint('id', name='applications_pkey'),
        Index('idx_applications_tuition_id', 'tuition_id'),
        Index('idx_applications_tutor_email', 'tutor_email'),
        # at most one approved application per tuition
        Index(
            'uq_applications_one_approved_per_tuition',
            'tuition_id',
            unique=True,
            postgresql_where=text("status = 'approved'"),
            sqlite_where=text("status = 'approved'"),
        )
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tuition_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    tutor_email: Mapped[str] = mapped_column(String(255))
    tutor_name: Mapped[str] = mapped_column(Text)
    qualifications: Mapped[Optional[str]] = mapped_column(Text)
    experience: Mapped[Optional[str]] = mapped_column(Text)
    expected_salary: Mapped[Optional[decimal.Decimal]] = mapped_column(Numeric(10, 2))
    status: Mapped[str] = mapped_column(_enum(ApplicationStatus, 'application_status'), default=ApplicationStatus.PENDING.value)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, server_default=func.now())

    tuition: Mapped['Tuitions'] = relationship('Tuitions', back_populates='applications')


class Payments(Base):
    __tablename__ = 'payments'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='payments_pkey'),
        UniqueConstraint('transaction_id', name='payments_transaction_id_key'),
        Index('idx_payments_student_email', 'student_email'),
        Index('idx_payments_tutor_email', 'tutor_email')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    transaction_id: Mapped[str] = mapped_column(String(255))
    application_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    tuition_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_email: Mapped[str] = mapped_column(String(255))
    tutor_email: Mapped[str] = mapped_column(String(255))
    tutor_name: Mapped[str] = mapped_column(Text)
    tuition_name: Mapped[str] = mapped_column(Text)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(String(8))
    payment_status: Mapped[str] = mapped_column(_enum(PaymentStatus, 'payment_status'), default=PaymentStatus.PAID.value)
    paid_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, server_default=func.now())


class Reviews(Base):
    __tablename__ = 'reviews'
    __table_args__ = (
        ForeignKeyConstraint(['tutor_id'], ['tutors.id'], ondelete='CASCADE', name='reviews_tutor_id_fkey'),
        PrimaryKeyConstraint('id', name='reviews_pkey'),
        Index('idx_reviews_tutor_id', 'tutor_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tutor_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_email: Mapped[str] = mapped_column(String(255))
    rating: Mapped[int] = mapped_column(Integer)
    comment: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), default=_utcnow, server_default=func.now())

    tutor: Mapped['Tutors'] = relationship('Tutors', back_populates='reviews')
