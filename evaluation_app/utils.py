from rest_framework import serializers


class LabelChoiceField(serializers.ChoiceField):
    """
    Accepts a choice by key or by label, case-insensitively, and renders
    the key. ``"operational"``, ``"OPERATIONAL"`` and ``"Operational"`` all
    map to ``OPERATIONAL``.
    """
    def to_internal_value(self, data):
        data_str = str(data).strip()
        if data_str == "" and self.allow_blank:
            return ""
        if data_str in self.choices:
            return data_str
        for key, label in self.choices.items():
            if str(key).lower() == data_str.lower():
                return key
        for key, label in self.choices.items():
            if str(label).lower() == data_str.lower():
                return key
        self.fail('invalid_choice', input=data)
