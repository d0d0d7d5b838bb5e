# schemas - Request body validation

from pydantic import ValidationError, field_validator

from errors import ValidationFailed


def validate_payload(schema, payload):
    """Validate a JSON body against a pydantic model, raising ValidationFailed with field details"""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationFailed(message='Request body must be a JSON object')
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        details = [
            {'field': '.'.join(str(part) for part in err['loc']), 'message': err['msg']}
            for err in exc.errors()
        ]
        raise ValidationFailed('VALIDATION_ERROR', 'Validation failed', details=details)


def update_fields(schema, payload):
    """Validated fields the caller actually sent, ready for dynamic_update"""
    return validate_payload(schema, payload).model_dump(exclude_unset=True)


def reject_null(*fields):
    """
    Validator for update schemas: an omitted field stays unset, but an
    explicit null on a column that cannot be empty is a validation error.
    """
    def check(cls, value):
        if value is None:
            raise ValueError('Field cannot be null')
        return value
    return field_validator(*fields)(check)
