from marshmallow import Schema, fields, pre_load, validate


class ColumnRequestSchema(Schema):
    column_name = fields.String(
        required=True, validate=validate.Length(min=1, max=64, error="Column name is required")
    )

    @pre_load
    def strip(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("column_name"), str):
            data = dict(data)
            data["column_name"] = data["column_name"].strip()
        return data


class DeviceStatCreateSchema(Schema):
    device_name = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=100))
    temperature = fields.Float(required=True, allow_nan=False)


class DeviceStatOutSchema(Schema):
    id = fields.String()
    device_name = fields.String(allow_none=True)
    temperature = fields.Float()
    created_at = fields.DateTime()
