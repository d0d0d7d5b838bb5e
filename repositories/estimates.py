# repositories/estimates.py

from models import Estimate, EstimateItem
from utils.query_builder import Listing
from .base import Repository


class EstimateRepository(Repository):
    model = Estimate
    not_found_code = 'ESTIMATE_NOT_FOUND'
    mutable_fields = frozenset({
        'customer_id', 'customer_name', 'customer_email', 'customer_phone', 'address',
        'city', 'state', 'zip_code', 'labor_hours', 'labor_rate', 'expiry_date',
        'notes', 'terms_conditions', 'payment_terms',
    })
    listing = Listing(
        Estimate,
        sort_fields={
            'created_at': Estimate.created_at,
            'sent_date': Estimate.sent_date,
            'expiry_date': Estimate.expiry_date,
            'total': Estimate.total,
            'customer_name': Estimate.customer_name,
        },
        filters={
            'status': Estimate.status,
            'customer_id': Estimate.customer_id,
        },
        date_ranges={
            'date_from': (Estimate.created_at, 'start'),
            'date_to': (Estimate.created_at, 'end'),
        },
        numeric_ranges={
            'min_total': (Estimate.total, 'min'),
            'max_total': (Estimate.total, 'max'),
        },
        search_columns=(Estimate.customer_name,),
    )

    def dynamic_update(self, record, fields):
        record = super().dynamic_update(record, fields)
        record.recalculate_totals()
        self.session.flush()
        return record


class EstimateItemRepository(Repository):
    model = EstimateItem
    not_found_code = 'ITEM_NOT_FOUND'
    mutable_fields = frozenset({
        'name', 'category', 'description', 'quantity', 'base_price', 'price_per_unit', 'difficulty',
    })

    def dynamic_update(self, record, fields):
        record = super().dynamic_update(record, fields)
        record.calculate_total()
        self.session.flush()
        return record
