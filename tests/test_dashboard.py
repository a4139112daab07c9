from datetime import timedelta

import pytest

from facilityops.services import cleaning as cleaning_service
from facilityops.services.dashboard import cleaning_kpis, facility_cleaning_stats
from facilityops.services.errors import NotFound


@pytest.fixture
def history(db, facility, cleaners, today):
    """One overdue day, one finished day and a fresh week ahead."""
    overdue, _ = cleaning_service.create_or_override_assignment(db, facility.id, cleaners[0].id, today - timedelta(days=3))
    done, _ = cleaning_service.create_or_override_assignment(db, facility.id, cleaners[1].id, today - timedelta(days=2))
    cleaning_service.set_assignment_status(db, done.id, "completed")
    # outside the 30-day window
    cleaning_service.create_or_override_assignment(db, facility.id, cleaners[2].id, today - timedelta(days=45))
    cleaning_service.auto_assign(db, facility.id, today=today)
    return overdue, done


def test_cleaning_kpis(db, history, today):
    kpis = cleaning_kpis(db, today=today)

    assert kpis["total_facilities"] == 1
    assert kpis["recent"] == {"total": 9, "completed": 1, "pending": 8, "in_progress": 0}
    assert kpis["cleaning_adherence_rate"] == 11
    # the 45-day-old pending row is still overdue
    assert kpis["overdue_tasks"] == 2
    assert kpis["upcoming_assignments"] == 7
    assert kpis["window_days"] == 30


def test_kpis_on_empty_database(db, roles, today):
    kpis = cleaning_kpis(db, today=today)
    assert kpis["cleaning_adherence_rate"] == 0
    assert kpis["overdue_tasks"] == 0
    assert kpis["total_facilities"] == 0


def test_facility_stats(db, history, facility, make_facility, today):
    other = make_facility("Quiet Wing")

    stats = facility_cleaning_stats(db, facility.id, today=today)
    assert stats["cleaning"]["total"] == 9
    assert stats["cleaning"]["adherence_rate"] == 11

    empty = facility_cleaning_stats(db, other.id, today=today)
    assert empty["cleaning"] == {"total": 0, "completed": 0, "pending": 0, "in_progress": 0, "adherence_rate": 0}

    with pytest.raises(NotFound):
        facility_cleaning_stats(db, 9999, today=today)


def test_dashboard_routes(client, facility, cleaners, headers_for):
    resp = client.get("/dashboard/cleaning", headers=headers_for(cleaners[0]))
    assert resp.status_code == 200
    assert resp.json()["total_facilities"] == 1

    stats = client.get(f"/dashboard/facility/{facility.id}", headers=headers_for(cleaners[0]))
    assert stats.status_code == 200
    assert stats.json()["facility_id"] == facility.id

    assert client.get("/dashboard/facility/x", headers=headers_for(cleaners[0])).status_code == 400
    assert client.get("/dashboard/cleaning").status_code == 401
