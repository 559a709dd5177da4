"""
Seed data generator: creates realistic fleet-operations data for the
catalog's data sources.

Generates:
  - ~60 clients
  - ~180 sites (1-5 per client)
  - ~120 vehicles
  - ~5 000 trips between sites of the same client

Tables are (re)created and filled via SQLAlchemy on the configured database
(``DATABASE_URL_OVERRIDE`` or the Postgres settings).
Run:  python -m pipelines.seed.seed_data
"""
from __future__ import annotations

import random
from datetime import date, datetime, timedelta

from faker import Faker
from sqlalchemy import Boolean, Column, Date, DateTime, Float, Integer, MetaData, Numeric, String, Table, create_engine, insert

from src.core.config import get_settings

fake = Faker("es_ES")
Faker.seed(42)
random.seed(42)

# ── Tunables ─────────────────────────────────────────────
NUM_CLIENTS = 60
MAX_SITES_PER_CLIENT = 5
NUM_VEHICLES = 120
NUM_TRIPS = 5_000

VEHICLE_TYPES = ["Camión", "Semirremolque", "Furgón", "Batea", "Cisterna"]
BRANDS = ["Scania", "Volvo", "Mercedes-Benz", "Iveco", "Ford", "Volkswagen"]
COMPANIES = ["Transportes del Sur", "Logística Andina", "Fletes Rápidos", "Carga Patagonia"]
TRIP_STATUSES = ["completado", "en_curso", "cancelado", "pendiente"]
STATUS_WEIGHTS = [0.75, 0.08, 0.07, 0.10]
CITIES = ["Buenos Aires", "Córdoba", "Rosario", "Mendoza", "Neuquén", "Salta", "Bahía Blanca", "Mar del Plata"]

# ── Helper: date ranges ─────────────────────────────────
DATE_START = datetime(2024, 1, 1)
DATE_END = datetime(2025, 12, 31)
DATE_RANGE_DAYS = (DATE_END - DATE_START).days


def _rand_ts() -> datetime:
    return DATE_START + timedelta(
        days=random.randint(0, DATE_RANGE_DAYS),
        hours=random.randint(0, 23),
        minutes=random.randint(0, 59),
    )


# ── Tables ───────────────────────────────────────────────

metadata = MetaData()

clients = Table(
    "clients", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(120), nullable=False),
    Column("tax_id", String(20)),
    Column("city", String(80)),
    Column("created_at", Date),
    Column("credit", Numeric(12, 2)),
)

sites = Table(
    "sites", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(120), nullable=False),
    Column("client_name", String(120)),
    Column("city", String(80)),
    Column("latitude", Float),
    Column("longitude", Float),
)

vehicles = Table(
    "vehicles", metadata,
    Column("id", Integer, primary_key=True),
    Column("plate", String(12), nullable=False),
    Column("vehicle_type", String(40)),
    Column("brand", String(40)),
    Column("model_year", Integer),
    Column("company_name", String(120)),
    Column("active", Boolean),
    Column("insurance_due", Date),
)

trips = Table(
    "trips", metadata,
    Column("id", Integer, primary_key=True),
    Column("trip_id", String(20), nullable=False),
    Column("client_name", String(120)),
    Column("origin_site", String(120)),
    Column("destination_site", String(120)),
    Column("vehicle_plate", String(12)),
    Column("trip_date", DateTime),
    Column("distance_km", Float),
    Column("fare", Numeric(12, 2)),
    Column("status", String(20)),
    Column("invoiced", Boolean),
)


# ── Generators ───────────────────────────────────────────

def gen_clients() -> list[dict]:
    rows = []
    for cid in range(1, NUM_CLIENTS + 1):
        rows.append({
            "id": cid,
            "name": fake.unique.company(),
            "tax_id": fake.bothify("30-########-#"),
            "city": random.choice(CITIES),
            "created_at": _rand_ts().date(),
            "credit": round(random.uniform(50_000, 2_000_000), 2),
        })
    return rows


def gen_sites(clients_rows: list[dict]) -> list[dict]:
    rows = []
    sid = 1
    for client in clients_rows:
        for _ in range(random.randint(1, MAX_SITES_PER_CLIENT)):
            rows.append({
                "id": sid,
                "name": f"{fake.street_name()} {sid}",
                "client_name": client["name"],
                "city": random.choice(CITIES),
                "latitude": round(random.uniform(-55.0, -22.0), 6),
                "longitude": round(random.uniform(-73.0, -53.0), 6),
            })
            sid += 1
    return rows


def gen_vehicles() -> list[dict]:
    rows = []
    for vid in range(1, NUM_VEHICLES + 1):
        rows.append({
            "id": vid,
            "plate": fake.unique.bothify("??###??").upper(),
            "vehicle_type": random.choice(VEHICLE_TYPES),
            "brand": random.choice(BRANDS),
            "model_year": random.randint(2008, 2025),
            "company_name": random.choice(COMPANIES),
            "active": random.random() > 0.1,
            "insurance_due": date(2025, 1, 1) + timedelta(days=random.randint(0, 540)),
        })
    return rows


def gen_trips(sites_rows: list[dict], vehicles_rows: list[dict]) -> list[dict]:
    by_client: dict[str, list[dict]] = {}
    for site in sites_rows:
        by_client.setdefault(site["client_name"], []).append(site)
    client_names = list(by_client)
    plates = [v["plate"] for v in vehicles_rows if v["active"]]

    rows = []
    for tid in range(1, NUM_TRIPS + 1):
        client = random.choice(client_names)
        origin = random.choice(by_client[client])
        destination = random.choice(by_client[client])
        distance = round(random.uniform(15, 1_200), 1)
        status = random.choices(TRIP_STATUSES, weights=STATUS_WEIGHTS, k=1)[0]
        rows.append({
            "id": tid,
            "trip_id": f"V-{tid:06d}",
            "client_name": client,
            "origin_site": origin["name"],
            "destination_site": destination["name"],
            "vehicle_plate": random.choice(plates),
            "trip_date": _rand_ts(),
            "distance_km": distance,
            "fare": round(distance * random.uniform(900, 1_600), 2),
            "status": status,
            "invoiced": status == "completado" and random.random() > 0.3,
        })
    return rows


# ── Bulk insert helper ───────────────────────────────────

def _bulk_insert(engine, table: Table, rows: list[dict], batch_size: int = 2000):
    """Insert rows into *table* in executemany batches."""
    if not rows:
        return
    with engine.begin() as conn:
        for i in range(0, len(rows), batch_size):
            conn.execute(insert(table), rows[i : i + batch_size])
    print(f"  ✓ {table.name}: {len(rows):,} rows")


# ── Main ─────────────────────────────────────────────────

def main():
    print("═══ Seed Data Generator ═══")
    engine = create_engine(get_settings().database_url, echo=False)

    # Recreate tables for idempotency
    print("Recreating tables …")
    metadata.drop_all(engine)
    metadata.create_all(engine)

    print("Generating data …")
    client_rows = gen_clients()
    site_rows = gen_sites(client_rows)
    vehicle_rows = gen_vehicles()
    trip_rows = gen_trips(site_rows, vehicle_rows)

    print("Inserting …")
    _bulk_insert(engine, clients, client_rows)
    _bulk_insert(engine, sites, site_rows)
    _bulk_insert(engine, vehicles, vehicle_rows)
    _bulk_insert(engine, trips, trip_rows)

    print(f"\nDone. Seeded {len(client_rows):,} clients, {len(site_rows):,} sites, "
          f"{len(vehicle_rows):,} vehicles, {len(trip_rows):,} trips.")


if __name__ == "__main__":
    main()
