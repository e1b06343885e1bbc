"""
Tenant Credentials Router — /api/credentials

Receives token sets from the OAuth flow so the token provider can find
them when a session loads.

Endpoints:
    PUT    /api/credentials/{tenant_id}  — Store or replace a tenant's tokens
    DELETE /api/credentials/{tenant_id}  — Disconnect a tenant
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from .. import crud
from ..database import get_db
from ..schemas import CredentialUpdate

router = APIRouter(prefix="/api/credentials", tags=["Credentials"])


@router.put("/{tenant_id}", status_code=200)
async def store_credential(tenant_id: str, data: CredentialUpdate, db: AsyncSession = Depends(get_db)):
    await crud.upsert_tenant_credential(
        db, tenant_id,
        tenant_name=data.tenant_name,
        access_token=data.access_token,
        refresh_token=data.refresh_token,
        expires_at=data.expires_at,
    )
    return {"detail": f"Credential for tenant {tenant_id} stored", "tenant_id": tenant_id}


@router.delete("/{tenant_id}", status_code=200)
async def delete_credential(tenant_id: str, db: AsyncSession = Depends(get_db)):
    deleted = await crud.delete_tenant_credential(db, tenant_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"No credential for tenant {tenant_id}")
    return {"detail": f"Credential for tenant {tenant_id} deleted"}
