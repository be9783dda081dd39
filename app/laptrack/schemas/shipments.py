from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


_SINGLE_SHIPMENT_EXAMPLE = {
    "shipment_type": "single_full_journey",
    "client_company_id": "9a1f4c1e-5a0b-4d43-9c1f-8b3c2f1d0e11",
    "jira_ticket_number": "SCOP-67702",
    "contact_name": "Dana Reyes",
    "contact_email": "dana@acme.example",
    "contact_phone": "+1-555-0100",
    "pickup_address": "500 Market St",
    "pickup_city": "San Francisco",
    "pickup_state": "CA",
    "pickup_zip": "94105",
    "pickup_date": "2030-01-15",
    "pickup_time_slot": "morning",
    "laptop_serial_number": "SN-001",
    "laptop_brand": "Dell",
    "laptop_model": "Latitude 7440",
    "laptop_cpu": "i7-1365U",
    "laptop_ram_gb": "16",
    "laptop_ssd_gb": "512",
    "include_accessories": False,
}


class PickupDetails(BaseModel):
    """Intake fields shared by every pickup form snapshot."""

    model_config = ConfigDict(extra="ignore")

    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    pickup_address: str | None = None
    pickup_city: str | None = None
    pickup_state: str | None = None
    pickup_zip: str | None = None
    pickup_date: str | None = None
    pickup_time_slot: str | None = None
    special_instructions: str | None = None
    include_accessories: bool = False
    accessories_description: str | None = None


class SingleFullJourneyCreate(PickupDetails):
    model_config = ConfigDict(extra="ignore", json_schema_extra={"example": _SINGLE_SHIPMENT_EXAMPLE})

    shipment_type: Literal["single_full_journey"] = "single_full_journey"
    client_company_id: UUID | None = None
    jira_ticket_number: str | None = None
    software_engineer_id: UUID | None = None
    number_of_laptops: int = 1
    laptop_serial_number: str | None = None
    laptop_sku: str | None = None
    laptop_brand: str | None = None
    laptop_model: str | None = None
    laptop_cpu: str | None = None
    laptop_ram_gb: str | None = None
    laptop_ssd_gb: str | None = None
    notes: str | None = None


class BulkToWarehouseCreate(PickupDetails):
    shipment_type: Literal["bulk_to_warehouse"] = "bulk_to_warehouse"
    client_company_id: UUID | None = None
    jira_ticket_number: str | None = None
    software_engineer_id: UUID | None = None
    number_of_laptops: int | None = None
    number_of_boxes: int | None = None
    bulk_length: float | None = None
    bulk_width: float | None = None
    bulk_height: float | None = None
    bulk_weight: float | None = None
    notes: str | None = None


class WarehouseToEngineerCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    shipment_type: Literal["warehouse_to_engineer"] = "warehouse_to_engineer"
    client_company_id: UUID | None = None
    jira_ticket_number: str | None = None
    laptop_id: UUID | None = None
    number_of_laptops: int = 1
    software_engineer_id: UUID | None = None
    engineer_name: str | None = None
    engineer_email: str | None = None
    engineer_phone: str | None = None
    delivery_address: str | None = None
    delivery_city: str | None = None
    delivery_state: str | None = None
    delivery_zip: str | None = None
    delivery_country: str | None = None
    courier_name: str | None = None
    tracking_number: str | None = None
    special_instructions: str | None = None
    notes: str | None = None


class MinimalBulkCreate(BaseModel):
    model_config = {
        "json_schema_extra": {
            "example": {
                "client_company_id": "9a1f4c1e-5a0b-4d43-9c1f-8b3c2f1d0e11",
                "jira_ticket_number": "SCOP-1200",
                "laptop_count": 5,
            }
        }
    }

    client_company_id: UUID
    jira_ticket_number: str
    laptop_count: int | None = None
    notes: str | None = None


class PickupFormSubmitRequest(PickupDetails):
    number_of_laptops: int | None = None
    number_of_boxes: int | None = None
    bulk_length: float | None = None
    bulk_width: float | None = None
    bulk_height: float | None = None
    bulk_weight: float | None = None


class StatusUpdateRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "pickup_scheduled",
                "courier_name": "UPS",
                "tracking_number": "1Z999AA10123456784",
            }
        }
    }

    status: str
    courier_name: str | None = None
    tracking_number: str | None = None
    eta: datetime | None = None


class ShipmentEditRequest(BaseModel):
    software_engineer_id: UUID | None = None
    courier_name: str | None = None
    second_tracking_number: str | None = None
    notes: str | None = None
    pickup_form: dict | None = None


class AssignEngineerRequest(BaseModel):
    software_engineer_id: UUID


class AddLaptopRequest(BaseModel):
    laptop_id: UUID


class LaptopCreateRequest(BaseModel):
    serial_number: str
    sku: str | None = None
    brand: str | None = None
    model: str | None = None
    cpu: str | None = None
    ram_gb: str | None = None
    ssd_gb: str | None = None
    status: str = "available"
    client_company_id: UUID | None = None
    notes: str | None = None


class LaptopResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    serial_number: str
    sku: str | None = None
    brand: str | None = None
    model: str | None = None
    cpu: str | None = None
    ram_gb: str | None = None
    ssd_gb: str | None = None
    status: str
    client_company_id: UUID | None = None
    software_engineer_id: UUID | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class PickupFormResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    form_data: dict
    submitted_by_user_id: UUID | None = None
    submitted_at: datetime
    updated_at: datetime


class ShipmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    shipment_type: str
    status: str
    client_company_id: UUID
    software_engineer_id: UUID | None = None
    laptop_count: int
    jira_ticket_number: str
    courier_name: str | None = None
    tracking_number: str | None = None
    second_tracking_number: str | None = None
    notes: str | None = None
    delivery_details: dict | None = None
    pickup_scheduled_date: datetime | None = None
    picked_up_at: datetime | None = None
    arrived_warehouse_at: datetime | None = None
    released_warehouse_at: datetime | None = None
    eta_to_engineer: datetime | None = None
    delivered_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    laptops: list[LaptopResponse] = []
    pickup_form: PickupFormResponse | None = None
    can_edit: bool = False
    edit_block_reason: str | None = None
    allowed_next_statuses: list[str] = []


class ShipmentListResponse(BaseModel):
    rows: list[ShipmentResponse]
