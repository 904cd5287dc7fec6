"""
Kundenaufpreis-API - Einzelpflege, Massen-Aufpreise und Massenbearbeitung
"""
from uuid import UUID
from fastapi import APIRouter, Query, status

from auftrag_core.api.deps import DBSession, CurrentActor
from auftrag_core.schemas.surcharge import (
    SurchargeUpsert, SurchargeResponse, EffectivePriceResponse,
    MassSurchargeRequest, BulkEditRequest, BulkEditResult,
)
from auftrag_core.services.surcharge_resolver import SurchargeResolver

router = APIRouter(prefix="/surcharges", tags=["Kundenaufpreise"])


@router.get("/effective-price", response_model=EffectivePriceResponse)
def get_effective_price(
    db: DBSession,
    actor: CurrentActor,
    article_id: UUID = Query(..., alias="articleId"),
    customer_id: UUID = Query(..., alias="customerId"),
):
    """Basispreis plus Kundenaufpreis (Kunden nur für sich selbst)"""
    service = SurchargeResolver(db)
    effective = service.effective_price_for(actor, article_id, customer_id)
    article = service.articles.get_by_id(article_id)
    return EffectivePriceResponse(
        article_id=article_id,
        customer_id=customer_id,
        base_price=article.base_price,
        surcharge=effective - article.base_price,
        effective_price=effective,
    )


@router.get("/article/{article_id}", response_model=list[SurchargeResponse])
def list_for_article(article_id: UUID, db: DBSession, actor: CurrentActor):
    return SurchargeResolver(db).list_for_article(actor, article_id)


@router.get("/customer/{customer_id}", response_model=list[SurchargeResponse])
def list_for_customer(customer_id: UUID, db: DBSession, actor: CurrentActor):
    return SurchargeResolver(db).list_for_customer(actor, customer_id)


@router.put("", response_model=SurchargeResponse)
def upsert_surcharge(data: SurchargeUpsert, db: DBSession, actor: CurrentActor):
    surcharge = SurchargeResolver(db).upsert_surcharge(
        actor, data.article_id, data.customer_id, data.amount
    )
    db.commit()
    db.refresh(surcharge)
    return surcharge


@router.delete("/{surcharge_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_surcharge(surcharge_id: UUID, db: DBSession, actor: CurrentActor):
    SurchargeResolver(db).delete_surcharge(actor, surcharge_id)
    db.commit()


@router.post("/mass", response_model=BulkEditResult)
def apply_mass_surcharge(data: MassSurchargeRequest, db: DBSession, actor: CurrentActor):
    """
    Aufpreis eines Artikels für alle Kunden einer Kategorie und/oder Region.
    Ohne Kriterien gilt er für alle Kunden.
    """
    affected = SurchargeResolver(db).apply_mass_surcharge(
        actor,
        data.article_id,
        data.amount,
        category=data.category,
        region=data.region,
    )
    db.commit()
    return BulkEditResult(affected=affected)


@router.post("/bulk-by-customer", response_model=BulkEditResult)
def bulk_edit_by_customer(data: BulkEditRequest, db: DBSession, actor: CurrentActor):
    """
    Aufpreise eines Kunden setzen, erhöhen oder verringern.

    Auswahl über Artikel-IDs, Kategorie und/oder Artikelnummern-Spanne,
    mindestens ein Kriterium ist Pflicht.
    """
    selection = data.selection
    affected = SurchargeResolver(db).bulk_edit_by_customer(
        actor,
        data.customer_id,
        data.action.mode,
        data.action.value,
        article_ids=selection.article_ids,
        category=selection.category,
        article_number_from=selection.article_number_from,
        article_number_to=selection.article_number_to,
    )
    db.commit()
    return BulkEditResult(affected=affected)
