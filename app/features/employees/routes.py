"""
Employee routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status

from app.core.database.unit_of_work import UnitOfWork
from app.core.schemas import MutationResult
from app.features.employees.schemas import EmployeeCreate, EmployeeResponse, EmployeeUpdate
from app.features.employees.service import EmployeeService
from app.features.lifecycle.dependencies import get_uow
from app.features.listing.dependencies import get_listing_gateway, list_query
from app.features.listing.gateway import ListingGateway
from app.features.listing.schemas import ListQuery, ListResult
from app.features.permissions.capabilities import Principal
from app.features.users.dependencies import get_principal, require_request_token


router = APIRouter()


@router.post("/", response_model=MutationResult, status_code=status.HTTP_201_CREATED)
async def create_employee(
    data: EmployeeCreate,
    principal: Annotated[Principal, Depends(require_request_token)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    employee = await EmployeeService(uow).create_employee(data, principal)
    return MutationResult(id=employee.id, message=f"Employee {employee.name} added")


@router.get("/", response_model=ListResult)
async def list_employees(
    principal: Annotated[Principal, Depends(get_principal)],
    query: Annotated[ListQuery, Depends(list_query)],
    gateway: Annotated[ListingGateway, Depends(get_listing_gateway)],
):
    return await gateway.list_entities("employee", principal, query)


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(
    employee_id: str,
    principal: Annotated[Principal, Depends(get_principal)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    return await EmployeeService(uow).get_employee(employee_id, principal)


@router.patch("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: str,
    data: EmployeeUpdate,
    principal: Annotated[Principal, Depends(require_request_token)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    employee = await EmployeeService(uow).update_employee(employee_id, data, principal)
    return await EmployeeService.serialize(employee)


@router.delete("/{employee_id}", response_model=MutationResult)
async def delete_employee(
    employee_id: str,
    principal: Annotated[Principal, Depends(require_request_token)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
):
    await EmployeeService(uow).delete_employee(employee_id, principal)
    return MutationResult(id=employee_id, message="Employee deleted")
