"""
Scheduling Service Layer - tasks, booking requests and the activity feed.
"""
import logging
from datetime import date, time
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from django.db import transaction, DatabaseError
from django.db.models import QuerySet
from django.utils import timezone
from django.utils.dateparse import parse_date

from core.exceptions import (
    NotFoundError,
    ValidationError,
    InvalidTransitionError,
    PersistenceError,
)
from .models import Customer, Employee, Task, BookingRequest, ActivityLog

logger = logging.getLogger(__name__)


TASK_TRANSITIONS = {
    Task.Status.PLANNED: {
        Task.Status.IN_PROGRESS,
        Task.Status.COMPLETED,
        Task.Status.CANCELLED,
    },
    Task.Status.IN_PROGRESS: {
        Task.Status.COMPLETED,
        Task.Status.CANCELLED,
    },
    Task.Status.COMPLETED: set(),
    Task.Status.CANCELLED: set(),
}


def _positive_hours(value, field: str) -> Decimal:
    try:
        hours = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not hours.is_finite():
        raise ValidationError(f"{field} must be a number")
    if hours.normalize().as_tuple().exponent < -2:
        raise ValidationError(f"{field} cannot have more than 2 decimals")
    if hours <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    if hours >= 1000:
        raise ValidationError(f"{field} must be less than 1000")
    return hours


def create_task(
    customer_id: int,
    scheduled_date: date,
    start_time: time,
    estimated_duration_hours,
    employee_id: Optional[int] = None,
    notes: str = '',
) -> Task:
    """
    Plan a new task, snapshotting customer and employee display fields.

    Raises:
        ValidationError: If the duration is not positive
        NotFoundError: If the customer or employee does not exist
    """
    hours = _positive_hours(estimated_duration_hours, 'estimated_duration_hours')

    try:
        customer = Customer.objects.get(id=customer_id)
    except Customer.DoesNotExist:
        raise NotFoundError(f"Customer {customer_id} not found")

    employee = None
    if employee_id is not None:
        try:
            employee = Employee.objects.get(id=employee_id)
        except Employee.DoesNotExist:
            raise NotFoundError(f"Employee {employee_id} not found")

    try:
        task = Task.objects.create(
            customer=customer,
            employee=employee,
            customer_name=customer.name,
            customer_address=customer.address,
            employee_name=employee.name if employee else '',
            scheduled_date=scheduled_date,
            start_time=start_time,
            estimated_duration_hours=hours,
            notes=notes or '',
        )
    except DatabaseError as e:
        logger.error(f"Failed to create task for customer {customer_id}: {e}")
        raise PersistenceError("Could not create task, please try again") from e

    logger.info(f"Planned task #{task.id} for {customer.name} on {scheduled_date}")
    log_activity(
        ActivityLog.Type.NEW_TASK,
        f"Ny opgave hos {customer.name} den {scheduled_date}",
        related_id=task.id
    )
    return task


def update_task_status(task_id: int, new_status: str, actual_duration_hours=None) -> Task:
    """
    Move a task along its lifecycle.

    Entering IN_PROGRESS stamps check-in; entering COMPLETED stamps
    check-out and stores the actual duration when one is given.

    Raises:
        NotFoundError: If the task does not exist
        ValidationError: If the status or duration is invalid
        InvalidTransitionError: If the transition table forbids the move
    """
    if new_status not in Task.Status.values:
        raise ValidationError(f"Unknown task status: {new_status}")

    actual_hours = None
    if actual_duration_hours is not None:
        if new_status != Task.Status.COMPLETED:
            raise ValidationError("Actual duration can only be set when completing a task")
        actual_hours = _positive_hours(actual_duration_hours, 'actual_duration_hours')

    try:
        with transaction.atomic():
            try:
                task = Task.objects.select_for_update().get(id=task_id)
            except Task.DoesNotExist:
                raise NotFoundError(f"Task {task_id} not found")

            if new_status not in TASK_TRANSITIONS[task.status]:
                raise InvalidTransitionError('task', task.status, new_status)

            now = timezone.now()
            task.status = new_status
            update_fields = ['status', 'updated_at']
            if new_status == Task.Status.IN_PROGRESS:
                task.check_in_time = now
                update_fields.append('check_in_time')
            elif new_status == Task.Status.COMPLETED:
                task.check_out_time = now
                update_fields.append('check_out_time')
                if actual_hours is not None:
                    task.actual_duration_hours = actual_hours
                    update_fields.append('actual_duration_hours')
            task.save(update_fields=update_fields)
    except DatabaseError as e:
        logger.error(f"Failed to update task #{task_id}: {e}")
        raise PersistenceError("Could not update task, please try again") from e

    logger.info(f"Task #{task.id} moved to {new_status}")
    log_activity(
        ActivityLog.Type.TASK_UPDATED,
        f"Opgave hos {task.customer_name} er nu {task.get_status_display().lower()}",
        related_id=task.id
    )
    return task


def tasks_ready_to_invoice() -> QuerySet:
    """Completed tasks without an invoice, newest scheduled date first."""
    return Task.objects.select_related('customer').filter(
        status=Task.Status.COMPLETED,
        invoice_generated=False
    ).order_by('-scheduled_date', '-start_time')


# =============================================================================
# Activity feed
# =============================================================================

def log_activity(activity_type: str, description: str,
                 related_id: Optional[int] = None) -> Optional[ActivityLog]:
    """
    Append an entry to the dashboard feed.

    Best effort: a failed write is logged and never undoes the change
    being reported.
    """
    try:
        with transaction.atomic():
            return ActivityLog.objects.create(
                type=activity_type,
                description=description[:500],
                related_id=related_id,
            )
    except DatabaseError as e:
        logger.error(f"Could not write activity '{activity_type}': {e}")
        return None


def recent_activity(limit: int = 10) -> QuerySet:
    return ActivityLog.objects.order_by('-created_at', '-id')[:limit]


# =============================================================================
# Booking requests
# =============================================================================

BOOKING_TRANSITIONS = {
    BookingRequest.Status.PENDING: {
        BookingRequest.Status.CONTACTED,
        BookingRequest.Status.CONVERTED,
        BookingRequest.Status.REJECTED,
    },
    BookingRequest.Status.CONTACTED: {
        BookingRequest.Status.CONVERTED,
        BookingRequest.Status.REJECTED,
    },
    BookingRequest.Status.CONVERTED: set(),
    BookingRequest.Status.REJECTED: set(),
}

BOOKING_REQUIRED_FIELDS = ['name', 'phone', 'email', 'address', 'zip_city']


def create_booking_request(data: Dict) -> BookingRequest:
    """
    Register an inquiry from the booking form. New requests start as pending.

    Args:
        data: name, phone, email, address, zip_city, sqm, cleaning_type,
              desired_start_date, frequency_preference, message

    Raises:
        ValidationError: If a required field is missing or a choice is unknown
    """
    values = {}
    for field in BOOKING_REQUIRED_FIELDS:
        value = (data.get(field) or '').strip()
        if not value:
            raise ValidationError(f"{field} is required")
        values[field] = value

    cleaning_type = data.get('cleaning_type') or Customer.CleaningType.STANDARD
    if cleaning_type not in Customer.CleaningType.values:
        raise ValidationError(f"Unknown cleaning type: {cleaning_type}")

    frequency = data.get('frequency_preference') or ''
    if frequency and frequency not in Customer.Frequency.values:
        raise ValidationError(f"Unknown frequency: {frequency}")

    desired_start_date = data.get('desired_start_date')
    if isinstance(desired_start_date, str):
        desired_start_date = parse_date(desired_start_date)
    if not isinstance(desired_start_date, date):
        raise ValidationError("desired_start_date must be a date")

    sqm = data.get('sqm')
    if sqm is not None:
        if not isinstance(sqm, int) or sqm <= 0:
            raise ValidationError("sqm must be a positive whole number")

    try:
        booking = BookingRequest.objects.create(
            cleaning_type=cleaning_type,
            frequency_preference=frequency,
            desired_start_date=desired_start_date,
            sqm=sqm,
            message=data.get('message') or '',
            **values
        )
    except DatabaseError as e:
        logger.error(f"Failed to save booking request from {values['name']}: {e}")
        raise PersistenceError("Could not save the request, please try again") from e

    logger.info(f"Booking request #{booking.id} from {booking.name}")
    log_activity(
        ActivityLog.Type.NEW_BOOKING_REQUEST,
        f"Ny forespørgsel fra {booking.name}",
        related_id=booking.id
    )
    return booking


def update_booking_request_status(request_id: int, new_status: str) -> BookingRequest:
    """
    Move a booking request along its lifecycle.

    Converting a request creates the Customer from the request's contact
    details and links it to the request.

    Raises:
        NotFoundError: If the request does not exist
        ValidationError: If the status is unknown
        InvalidTransitionError: If the transition table forbids the move
    """
    if new_status not in BookingRequest.Status.values:
        raise ValidationError(f"Unknown booking request status: {new_status}")

    customer = None
    try:
        with transaction.atomic():
            try:
                booking = BookingRequest.objects.select_for_update().get(id=request_id)
            except BookingRequest.DoesNotExist:
                raise NotFoundError(f"Booking request {request_id} not found")

            if new_status not in BOOKING_TRANSITIONS[booking.status]:
                raise InvalidTransitionError('booking request', booking.status, new_status)

            update_fields = ['status', 'updated_at']
            if new_status == BookingRequest.Status.CONVERTED:
                customer = Customer.objects.create(
                    name=booking.name,
                    address=booking.full_address,
                    phone=booking.phone,
                    email=booking.email,
                    cleaning_type=booking.cleaning_type,
                    frequency=booking.frequency_preference or Customer.Frequency.ONE_TIME,
                    notes=booking.message,
                )
                booking.customer = customer
                update_fields.append('customer')

            booking.status = new_status
            booking.save(update_fields=update_fields)
    except DatabaseError as e:
        logger.error(f"Failed to update booking request #{request_id}: {e}")
        raise PersistenceError("Could not update the request, please try again") from e

    logger.info(f"Booking request #{booking.id} moved to {new_status}")
    if customer is not None:
        log_activity(
            ActivityLog.Type.NEW_CUSTOMER,
            f"Ny kunde oprettet fra forespørgsel: {customer.name}",
            related_id=customer.id
        )
    return booking


def delete_booking_request(request_id: int) -> None:
    """
    Raises:
        NotFoundError: If the request does not exist
    """
    deleted, _ = BookingRequest.objects.filter(id=request_id).delete()
    if not deleted:
        raise NotFoundError(f"Booking request {request_id} not found")
    logger.info(f"Deleted booking request #{request_id}")


def booking_requests(status: Optional[str] = None) -> QuerySet:
    """Booking requests, newest first, optionally filtered by status."""
    queryset = BookingRequest.objects.select_related('customer')
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by('-created_at', '-id')
