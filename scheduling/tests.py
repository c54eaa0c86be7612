"""
Tests for task planning and the task lifecycle.

Test Cases:
1. Task creation snapshots customer and employee names
2. Allowed and forbidden status transitions
3. Check-in / check-out stamping and actual duration
4. Completed, uninvoiced tasks are listed as ready to invoice
5. Booking request lifecycle and conversion to customer
6. Activity feed entries for new and updated records
"""
from datetime import date, time
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase

from core.exceptions import NotFoundError, ValidationError, InvalidTransitionError
from scheduling.models import Customer, Employee, Task, BookingRequest, ActivityLog
from scheduling.services import (
    create_task,
    update_task_status,
    tasks_ready_to_invoice,
    create_booking_request,
    update_booking_request_status,
    delete_booking_request,
    booking_requests,
    recent_activity,
)


class TaskCreationTestCase(TestCase):
    """Test cases for planning tasks."""

    def setUp(self):
        self.customer = Customer.objects.create(
            name='Anne Jensen',
            address='Strandvejen 12, 2100 København',
            hourly_rate=Decimal('349.00')
        )
        self.employee = Employee.objects.create(name='Rawan')

    def test_create_task_snapshots_names(self):
        task = create_task(
            self.customer.id,
            date(2024, 3, 1),
            time(9, 0),
            '3.0',
            employee_id=self.employee.id
        )

        self.assertEqual(task.status, Task.Status.PLANNED)
        self.assertEqual(task.customer_name, 'Anne Jensen')
        self.assertEqual(task.customer_address, 'Strandvejen 12, 2100 København')
        self.assertEqual(task.employee_name, 'Rawan')
        self.assertEqual(task.estimated_duration_hours, Decimal('3.0'))
        self.assertFalse(task.invoice_generated)

    def test_snapshot_survives_customer_rename(self):
        task = create_task(self.customer.id, date(2024, 3, 1), time(9, 0), 2)

        self.customer.name = 'Anne Jensen-Holm'
        self.customer.save()

        task.refresh_from_db()
        self.assertEqual(task.customer_name, 'Anne Jensen')

    def test_create_task_without_employee(self):
        task = create_task(self.customer.id, date(2024, 3, 1), time(9, 0), 2)

        self.assertIsNone(task.employee)
        self.assertEqual(task.employee_name, '')

    def test_create_task_rejects_non_positive_duration(self):
        with self.assertRaises(ValidationError):
            create_task(self.customer.id, date(2024, 3, 1), time(9, 0), 0)

        self.assertEqual(Task.objects.count(), 0)

    def test_create_task_rejects_invalid_duration(self):
        for value in ['NaN', 'Infinity', '2.125', '1000', 'abc']:
            with self.assertRaises(ValidationError):
                create_task(self.customer.id, date(2024, 3, 1), time(9, 0), value)

        self.assertEqual(Task.objects.count(), 0)

    def test_create_task_unknown_customer(self):
        with self.assertRaises(NotFoundError):
            create_task(99999, date(2024, 3, 1), time(9, 0), 2)

    def test_create_task_unknown_employee(self):
        with self.assertRaises(NotFoundError):
            create_task(self.customer.id, date(2024, 3, 1), time(9, 0), 2, employee_id=99999)


class TaskStatusTestCase(TestCase):
    """Test cases for the task lifecycle."""

    def setUp(self):
        self.customer = Customer.objects.create(name='Lars Nielsen')
        self.task = create_task(self.customer.id, date(2024, 3, 1), time(9, 0), '2.5')

    def test_start_stamps_check_in(self):
        task = update_task_status(self.task.id, Task.Status.IN_PROGRESS)

        self.assertEqual(task.status, Task.Status.IN_PROGRESS)
        self.assertIsNotNone(task.check_in_time)
        self.assertIsNone(task.check_out_time)

    def test_complete_stamps_check_out_and_actual_hours(self):
        update_task_status(self.task.id, Task.Status.IN_PROGRESS)
        task = update_task_status(self.task.id, Task.Status.COMPLETED, actual_duration_hours='3.25')

        task.refresh_from_db()
        self.assertEqual(task.status, Task.Status.COMPLETED)
        self.assertIsNotNone(task.check_out_time)
        self.assertEqual(task.actual_duration_hours, Decimal('3.25'))
        self.assertEqual(task.billable_hours, Decimal('3.25'))

    def test_complete_directly_from_planned(self):
        task = update_task_status(self.task.id, Task.Status.COMPLETED)

        task.refresh_from_db()
        self.assertIsNone(task.actual_duration_hours)
        self.assertEqual(task.billable_hours, Decimal('2.5'))
        self.assertTrue(task.is_invoiceable)

    def test_terminal_statuses(self):
        update_task_status(self.task.id, Task.Status.COMPLETED)

        for new_status in [Task.Status.PLANNED, Task.Status.IN_PROGRESS, Task.Status.CANCELLED]:
            with self.assertRaises(InvalidTransitionError):
                update_task_status(self.task.id, new_status)

        self.task.refresh_from_db()
        self.assertEqual(self.task.status, Task.Status.COMPLETED)

    def test_cancelled_cannot_restart(self):
        update_task_status(self.task.id, Task.Status.CANCELLED)

        with self.assertRaises(InvalidTransitionError):
            update_task_status(self.task.id, Task.Status.IN_PROGRESS)

    def test_in_progress_cannot_go_back(self):
        update_task_status(self.task.id, Task.Status.IN_PROGRESS)

        with self.assertRaises(InvalidTransitionError):
            update_task_status(self.task.id, Task.Status.PLANNED)

    def test_unknown_status(self):
        with self.assertRaises(ValidationError):
            update_task_status(self.task.id, 'DONE')

    def test_actual_hours_only_on_completion(self):
        with self.assertRaises(ValidationError):
            update_task_status(self.task.id, Task.Status.IN_PROGRESS, actual_duration_hours=2)

        self.task.refresh_from_db()
        self.assertEqual(self.task.status, Task.Status.PLANNED)

    def test_actual_hours_must_be_finite_with_two_decimals(self):
        for value in ['NaN', '-Infinity', '1.001']:
            with self.assertRaises(ValidationError):
                update_task_status(self.task.id, Task.Status.COMPLETED, actual_duration_hours=value)

        self.task.refresh_from_db()
        self.assertEqual(self.task.status, Task.Status.PLANNED)

    def test_unknown_task(self):
        with self.assertRaises(NotFoundError):
            update_task_status(99999, Task.Status.COMPLETED)


class ReadyToInvoiceTestCase(TestCase):
    """Test cases for the list of tasks waiting for an invoice."""

    def setUp(self):
        self.customer = Customer.objects.create(name='Mette Hansen')

    def _task(self, scheduled_date, start_time, status, invoiced=False):
        return Task.objects.create(
            customer=self.customer,
            customer_name=self.customer.name,
            scheduled_date=scheduled_date,
            start_time=start_time,
            estimated_duration_hours=Decimal('2.00'),
            status=status,
            invoice_generated=invoiced
        )

    def test_only_completed_uninvoiced_tasks(self):
        ready = self._task(date(2024, 3, 1), time(9, 0), Task.Status.COMPLETED)
        self._task(date(2024, 3, 2), time(9, 0), Task.Status.COMPLETED, invoiced=True)
        self._task(date(2024, 3, 3), time(9, 0), Task.Status.PLANNED)
        self._task(date(2024, 3, 4), time(9, 0), Task.Status.CANCELLED)

        self.assertEqual([task.id for task in tasks_ready_to_invoice()], [ready.id])

    def test_newest_first(self):
        older = self._task(date(2024, 3, 1), time(9, 0), Task.Status.COMPLETED)
        morning = self._task(date(2024, 3, 5), time(8, 0), Task.Status.COMPLETED)
        afternoon = self._task(date(2024, 3, 5), time(13, 0), Task.Status.COMPLETED)

        self.assertEqual(
            [task.id for task in tasks_ready_to_invoice()],
            [afternoon.id, morning.id, older.id]
        )


class SchedulingAPITestCase(APITestCase):
    """Test cases for the scheduling endpoints."""

    def setUp(self):
        self.customer = Customer.objects.create(name='Søren Larsen', address='Jagtvej 3')
        self.employee = Employee.objects.create(name='Jonas')

    def test_create_task(self):
        response = self.client.post(
            reverse('scheduling:task-list'),
            {
                'customer_id': self.customer.id,
                'employee_id': self.employee.id,
                'scheduled_date': '2024-03-01',
                'start_time': '09:00',
                'estimated_duration_hours': '3.00',
            },
            format='json'
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['customer_name'], 'Søren Larsen')
        self.assertEqual(response.data['employee_name'], 'Jonas')
        self.assertEqual(response.data['status'], Task.Status.PLANNED)

    def test_create_task_unknown_customer(self):
        response = self.client.post(
            reverse('scheduling:task-list'),
            {
                'customer_id': 99999,
                'scheduled_date': '2024-03-01',
                'start_time': '09:00',
                'estimated_duration_hours': '3.00',
            },
            format='json'
        )

        self.assertEqual(response.status_code, 404)

    def test_list_tasks_by_date(self):
        create_task(self.customer.id, date(2024, 3, 1), time(9, 0), 2)
        create_task(self.customer.id, date(2024, 3, 2), time(9, 0), 2)

        response = self.client.get(reverse('scheduling:task-list'), {'date': '2024-03-02'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['scheduled_date'], '2024-03-02')

    def test_status_endpoint(self):
        task = create_task(self.customer.id, date(2024, 3, 1), time(9, 0), 2)

        response = self.client.post(
            reverse('scheduling:task-status', args=[task.id]),
            {'status': 'COMPLETED', 'actual_duration_hours': '2.50'},
            format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'COMPLETED')
        self.assertEqual(response.data['billable_hours'], '2.50')

    def test_status_endpoint_invalid_transition(self):
        task = create_task(self.customer.id, date(2024, 3, 1), time(9, 0), 2)
        update_task_status(task.id, Task.Status.CANCELLED)

        response = self.client.post(
            reverse('scheduling:task-status', args=[task.id]),
            {'status': 'COMPLETED'},
            format='json'
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['error'], 'Invalid Transition')

    def test_ready_to_invoice_endpoint(self):
        task = create_task(self.customer.id, date(2024, 3, 1), time(9, 0), 2)
        update_task_status(task.id, Task.Status.COMPLETED)

        response = self.client.get(reverse('scheduling:task-ready-to-invoice'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual([row['id'] for row in response.data], [task.id])

    def test_customer_task_count(self):
        create_task(self.customer.id, date(2024, 3, 1), time(9, 0), 2)

        response = self.client.get(reverse('scheduling:customer-detail', args=[self.customer.id]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['task_count'], 1)


def booking_data(**overrides):
    data = {
        'name': 'Camilla Holm',
        'phone': '+45 22 33 44 55',
        'email': 'camilla@example.dk',
        'address': 'Jagtvej 14',
        'zip_city': '2200 København N',
        'sqm': 85,
        'cleaning_type': Customer.CleaningType.STANDARD,
        'desired_start_date': date(2024, 4, 1),
        'frequency_preference': Customer.Frequency.BI_WEEKLY,
        'message': 'Har en hund',
    }
    data.update(overrides)
    return data


class BookingRequestTestCase(TestCase):
    """Test cases for the booking request lifecycle."""

    def test_create_starts_pending(self):
        booking = create_booking_request(booking_data())

        self.assertEqual(booking.status, BookingRequest.Status.PENDING)
        self.assertIsNone(booking.customer)
        self.assertEqual(booking.full_address, 'Jagtvej 14, 2200 København N')

    def test_create_accepts_iso_date(self):
        booking = create_booking_request(booking_data(desired_start_date='2024-04-01', sqm=None))

        self.assertEqual(booking.desired_start_date, date(2024, 4, 1))
        self.assertIsNone(booking.sqm)

    def test_create_validation(self):
        invalid = [
            booking_data(name='  '),
            booking_data(email=''),
            booking_data(zip_city=None),
            booking_data(cleaning_type='WINDOWS'),
            booking_data(frequency_preference='DAILY'),
            booking_data(desired_start_date='not a date'),
            booking_data(sqm=0),
        ]
        for data in invalid:
            with self.assertRaises(ValidationError):
                create_booking_request(data)

        self.assertEqual(BookingRequest.objects.count(), 0)

    def test_contacted_then_rejected(self):
        booking = create_booking_request(booking_data())

        update_booking_request_status(booking.id, BookingRequest.Status.CONTACTED)
        booking = update_booking_request_status(booking.id, BookingRequest.Status.REJECTED)

        self.assertEqual(booking.status, BookingRequest.Status.REJECTED)
        self.assertEqual(Customer.objects.count(), 0)

    def test_convert_creates_customer(self):
        """
        Given: A pending booking request
        When: Converting it to a customer
        Then: A customer is created from its contact details and linked
        """
        booking = create_booking_request(booking_data())

        booking = update_booking_request_status(booking.id, BookingRequest.Status.CONVERTED)

        customer = Customer.objects.get()
        self.assertEqual(booking.customer, customer)
        self.assertEqual(customer.name, 'Camilla Holm')
        self.assertEqual(customer.address, 'Jagtvej 14, 2200 København N')
        self.assertEqual(customer.email, 'camilla@example.dk')
        self.assertEqual(customer.frequency, Customer.Frequency.BI_WEEKLY)
        self.assertEqual(customer.notes, 'Har en hund')

    def test_convert_without_frequency_defaults_to_one_time(self):
        booking = create_booking_request(booking_data(frequency_preference=''))

        update_booking_request_status(booking.id, BookingRequest.Status.CONVERTED)

        self.assertEqual(Customer.objects.get().frequency, Customer.Frequency.ONE_TIME)

    def test_terminal_statuses(self):
        booking = create_booking_request(booking_data())
        update_booking_request_status(booking.id, BookingRequest.Status.CONVERTED)

        for new_status in [BookingRequest.Status.PENDING, BookingRequest.Status.REJECTED]:
            with self.assertRaises(InvalidTransitionError):
                update_booking_request_status(booking.id, new_status)

        self.assertEqual(Customer.objects.count(), 1)

    def test_unknown_status_and_request(self):
        booking = create_booking_request(booking_data())

        with self.assertRaises(ValidationError):
            update_booking_request_status(booking.id, 'archived')
        with self.assertRaises(NotFoundError):
            update_booking_request_status(99999, BookingRequest.Status.CONTACTED)

    def test_delete(self):
        booking = create_booking_request(booking_data())

        delete_booking_request(booking.id)

        self.assertFalse(BookingRequest.objects.exists())
        with self.assertRaises(NotFoundError):
            delete_booking_request(booking.id)

    def test_list_filtered_by_status(self):
        first = create_booking_request(booking_data())
        second = create_booking_request(booking_data(name='Peter Lund'))
        update_booking_request_status(first.id, BookingRequest.Status.CONTACTED)

        self.assertEqual([b.id for b in booking_requests()], [second.id, first.id])
        self.assertEqual(
            [b.id for b in booking_requests(BookingRequest.Status.PENDING)],
            [second.id]
        )


class ActivityLogTestCase(TestCase):
    """Test cases for the recent activity feed."""

    def test_task_and_booking_events_logged(self):
        customer = Customer.objects.create(name='Ida Rasmussen')
        task = create_task(customer.id, date(2024, 3, 1), time(9, 0), 2)
        update_task_status(task.id, Task.Status.IN_PROGRESS)
        booking = create_booking_request(booking_data())

        entries = list(recent_activity())

        self.assertEqual(
            [entry.type for entry in entries],
            [
                ActivityLog.Type.NEW_BOOKING_REQUEST,
                ActivityLog.Type.TASK_UPDATED,
                ActivityLog.Type.NEW_TASK,
            ]
        )
        self.assertEqual(entries[0].related_id, booking.id)
        self.assertEqual(entries[2].related_id, task.id)

    def test_rejected_change_is_not_logged(self):
        customer = Customer.objects.create(name='Ida Rasmussen')
        task = create_task(customer.id, date(2024, 3, 1), time(9, 0), 2)

        with self.assertRaises(InvalidTransitionError):
            update_task_status(task.id, Task.Status.PLANNED)

        self.assertEqual(ActivityLog.objects.filter(type=ActivityLog.Type.TASK_UPDATED).count(), 0)

    def test_limit(self):
        for i in range(4):
            create_booking_request(booking_data(name=f'Kunde {i}'))

        self.assertEqual(len(list(recent_activity(limit=3))), 3)


class BookingRequestAPITestCase(APITestCase):
    """Test cases for the booking request and activity endpoints."""

    def test_submit_booking_request(self):
        response = self.client.post(
            reverse('scheduling:booking-request-list'),
            {
                'name': 'Line Petersen',
                'phone': '+45 40 50 60 70',
                'email': 'line@example.dk',
                'address': 'Østerbrogade 88',
                'zip_city': '2100 København Ø',
                'cleaning_type': 'DEEP_CLEAN',
                'desired_start_date': '2024-05-01',
            },
            format='json'
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['status'], 'pending')
        self.assertIsNone(response.data['customer'])

    def test_submit_booking_request_missing_fields(self):
        response = self.client.post(
            reverse('scheduling:booking-request-list'),
            {'name': 'Line Petersen'},
            format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(BookingRequest.objects.count(), 0)

    def test_convert_endpoint(self):
        booking = create_booking_request(booking_data())

        response = self.client.post(
            reverse('scheduling:booking-request-status', args=[booking.id]),
            {'status': 'converted_to_customer'},
            format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['customer']['name'], 'Camilla Holm')

    def test_invalid_transition_endpoint(self):
        booking = create_booking_request(booking_data())
        update_booking_request_status(booking.id, BookingRequest.Status.REJECTED)

        response = self.client.post(
            reverse('scheduling:booking-request-status', args=[booking.id]),
            {'status': 'contacted'},
            format='json'
        )

        self.assertEqual(response.status_code, 409)

    def test_delete_endpoint(self):
        booking = create_booking_request(booking_data())

        response = self.client.delete(reverse('scheduling:booking-request-detail', args=[booking.id]))

        self.assertEqual(response.status_code, 204)
        self.assertFalse(BookingRequest.objects.exists())

    def test_list_endpoint_status_filter(self):
        create_booking_request(booking_data())
        contacted = create_booking_request(booking_data(name='Peter Lund'))
        update_booking_request_status(contacted.id, BookingRequest.Status.CONTACTED)

        response = self.client.get(reverse('scheduling:booking-request-list'), {'status': 'contacted'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual([row['id'] for row in response.data], [contacted.id])

    def test_activity_endpoint_logs_new_customer(self):
        response = self.client.post(
            reverse('scheduling:customer-list'),
            {'name': 'Henrik Sørensen', 'address': 'Amagerbrogade 3'},
            format='json'
        )
        self.assertEqual(response.status_code, 201)

        activity = self.client.get(reverse('scheduling:activity-list'), {'limit': '5'})

        self.assertEqual(activity.status_code, 200)
        self.assertEqual(activity.data[0]['type'], 'new_customer')
        self.assertEqual(activity.data[0]['related_id'], response.data['id'])
