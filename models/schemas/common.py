from marshmallow import Schema, fields, validate, EXCLUDE

MAX_PAGE_SIZE = 100


class PaginationSchema(Schema):
    class Meta:
        # query strings may carry unrelated parameters
        unknown = EXCLUDE

    page = fields.Integer(load_default=1, validate=validate.Range(min=1, error="page must be >= 1"))
    page_size = fields.Integer(
        load_default=20,
        validate=validate.Range(min=1, max=MAX_PAGE_SIZE, error=f"page_size must be between 1 and {MAX_PAGE_SIZE}"),
    )
