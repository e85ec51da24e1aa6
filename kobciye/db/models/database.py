from typing import Any, Optional
import datetime
import uuid

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKeyConstraint, Index, Integer, PrimaryKeyConstraint, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from kobciye.libs.formats.datetime import now


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = 'user'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='user_pk'),
        UniqueConstraint('email', name='user_email_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String, nullable=False)
    password: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    last_login_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)

    profile: Mapped[Optional['Profiles']] = relationship('Profiles', uselist=False, back_populates='user')
    user_roles: Mapped[list['UserRoles']] = relationship('UserRoles', back_populates='user', cascade='all, delete-orphan')
    enrollments: Mapped[list['Enrollments']] = relationship('Enrollments', back_populates='user')
    user_progress: Mapped[list['UserProgress']] = relationship('UserProgress', back_populates='user')
    notifications: Mapped[list['Notifications']] = relationship('Notifications', back_populates='user')
    credit_purchases: Mapped[list['CreditPurchases']] = relationship('CreditPurchases', back_populates='user')
    appointments: Mapped[list['Appointments']] = relationship('Appointments', back_populates='user')


class UserRoles(Base):
    __tablename__ = 'user_roles'
    __table_args__ = (
        CheckConstraint("role IN ('super_admin', 'admin', 'instructor', 'student')", name='user_roles_role_check'),
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='user_roles_user_fk'),
        PrimaryKeyConstraint('id', name='user_roles_pk'),
        UniqueConstraint('user_id', 'role', name='user_roles_user_role_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)

    user: Mapped['User'] = relationship('User', back_populates='user_roles')


class Profiles(Base):
    __tablename__ = 'profiles'
    __table_args__ = (
        CheckConstraint('credits >= 0', name='profiles_credits_non_negative'),
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='profiles_user_fk'),
        PrimaryKeyConstraint('id', name='profiles_pkey'),
        UniqueConstraint('user_id', name='profiles_user_id_key'),
        {'comment': 'One profile per user; holds the credit balance'}
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text('0'))
    full_name: Mapped[Optional[str]] = mapped_column(String)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now, onupdate=now)

    user: Mapped['User'] = relationship('User', back_populates='profile')


class Courses(Base):
    __tablename__ = 'courses'
    __table_args__ = (
        CheckConstraint('price >= 0', name='courses_price_non_negative'),
        PrimaryKeyConstraint('id', name='courses_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    title_so: Mapped[Optional[str]] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)
    description_so: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[str] = mapped_column(Text, nullable=False, default='general')
    category_so: Mapped[Optional[str]] = mapped_column(Text)
    level: Mapped[Optional[str]] = mapped_column(Text, default='beginner')
    level_so: Mapped[Optional[str]] = mapped_column(Text)
    instructor_name: Mapped[str] = mapped_column(Text, nullable=False, default='')
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text('0'))
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text('false'))
    is_playlist: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text('true'))
    students_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text('0'))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now, onupdate=now)

    playlists: Mapped[list['Playlists']] = relationship('Playlists', back_populates='course', cascade='all, delete-orphan', order_by='Playlists.order_index')
    enrollments: Mapped[list['Enrollments']] = relationship('Enrollments', back_populates='course', cascade='all, delete-orphan')


class Playlists(Base):
    __tablename__ = 'playlists'
    __table_args__ = (
        ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE', name='playlists_course_id_fkey'),
        PrimaryKeyConstraint('id', name='playlists_pkey'),
        Index('idx_playlists_course_order', 'course_id', 'order_index'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    title_so: Mapped[Optional[str]] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)
    description_so: Mapped[Optional[str]] = mapped_column(Text)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now, onupdate=now)

    course: Mapped['Courses'] = relationship('Courses', back_populates='playlists')
    videos: Mapped[list['Videos']] = relationship('Videos', back_populates='playlist', cascade='all, delete-orphan', order_by='Videos.order_index')


class Videos(Base):
    __tablename__ = 'videos'
    __table_args__ = (
        CheckConstraint("video_source IN ('youtube', 'upload', 'external')", name='videos_source_check'),
        ForeignKeyConstraint(['playlist_id'], ['playlists.id'], ondelete='CASCADE', name='videos_playlist_id_fkey'),
        PrimaryKeyConstraint('id', name='videos_pkey'),
        Index('idx_videos_playlist_order', 'playlist_id', 'order_index'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    playlist_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    title_so: Mapped[Optional[str]] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)
    description_so: Mapped[Optional[str]] = mapped_column(Text)
    video_source: Mapped[str] = mapped_column(String(20), nullable=False, default='youtube')
    video_url: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(Text)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer)
    is_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text('false'))
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now, onupdate=now)

    playlist: Mapped['Playlists'] = relationship('Playlists', back_populates='videos')
    user_progress: Mapped[list['UserProgress']] = relationship('UserProgress', back_populates='video', cascade='all, delete-orphan')


class Enrollments(Base):
    __tablename__ = 'enrollments'
    __table_args__ = (
        CheckConstraint("status IN ('active', 'completed', 'cancelled')", name='enrollments_status_check'),
        CheckConstraint('progress >= 0 AND progress <= 100', name='enrollments_progress_range'),
        ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE', name='enrollments_course_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='enrollments_user_id_fkey'),
        PrimaryKeyConstraint('id', name='enrollments_pkey'),
        # at most one live (non-cancelled) enrollment per (user, course)
        Index(
            'enrollments_live_user_course_key',
            'user_id',
            'course_id',
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text('0'))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='active', server_default=text("'active'"))
    enrolled_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    completed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)

    course: Mapped['Courses'] = relationship('Courses', back_populates='enrollments')
    user: Mapped['User'] = relationship('User', back_populates='enrollments')


class UserProgress(Base):
    __tablename__ = 'user_progress'
    __table_args__ = (
        CheckConstraint('watched_percentage >= 0 AND watched_percentage <= 100', name='user_progress_percentage_range'),
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='user_progress_user_id_fkey'),
        ForeignKeyConstraint(['video_id'], ['videos.id'], ondelete='CASCADE', name='user_progress_video_id_fkey'),
        PrimaryKeyConstraint('id', name='user_progress_pkey'),
        UniqueConstraint('user_id', 'video_id', name='user_progress_user_video_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    video_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    watched_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_position_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    play_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_watched_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now, onupdate=now)

    user: Mapped['User'] = relationship('User', back_populates='user_progress')
    video: Mapped['Videos'] = relationship('Videos', back_populates='user_progress')


class Notifications(Base):
    __tablename__ = 'notifications'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='notifications_user_id_fkey'),
        PrimaryKeyConstraint('id', name='notifications_pkey'),
        Index('idx_notifications_user_read', 'user_id', 'is_read'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default='info')
    link: Mapped[Optional[str]] = mapped_column(Text)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)

    user: Mapped['User'] = relationship('User', back_populates='notifications')


class AppSettings(Base):
    __tablename__ = 'app_settings'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='app_settings_pkey'),
        UniqueConstraint('key', name='app_settings_key_key'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    key: Mapped[str] = mapped_column(String(50), nullable=False)
    value: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now, onupdate=now)


class CreditPurchases(Base):
    __tablename__ = 'credit_purchases'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='credit_purchases_user_id_fkey'),
        PrimaryKeyConstraint('id', name='credit_purchases_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    package_id: Mapped[int] = mapped_column(Integer, nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='pending')
    transaction_id: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    completed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)

    user: Mapped['User'] = relationship('User', back_populates='credit_purchases')


class Appointments(Base):
    __tablename__ = 'appointments'
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'confirmed', 'cancelled')", name='appointments_status_check'),
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='appointments_user_id_fkey'),
        PrimaryKeyConstraint('id', name='appointments_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    scheduled_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default='pending')
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)

    user: Mapped['User'] = relationship('User', back_populates='appointments')
