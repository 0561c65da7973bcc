# backend/labelscan/serializers.py
from rest_framework import serializers


class NutrientFieldsMixin(serializers.Serializer):
    # kept as strings: "10,5" is valid input, junk just means "unset"
    sugar = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    fat = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    salt = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AnalyzeTextRequest(NutrientFieldsMixin):
    text = serializers.CharField(allow_blank=False, trim_whitespace=True)


class OcrAnalyzeRequest(serializers.Serializer):
    image = serializers.ImageField()
    engine = serializers.ChoiceField(choices=["local", "cloud"], required=False)
    langs = serializers.RegexField(r"^[a-z_]+(\+[a-z_]+)*$", required=False)
    enhance = serializers.BooleanField(required=False, allow_null=True)


class AdditiveSerializer(serializers.Serializer):
    code = serializers.CharField()
    name = serializers.CharField()
    category = serializers.CharField()
    risk = serializers.CharField()


class VerdictSerializer(serializers.Serializer):
    level = serializers.CharField()
    title = serializers.CharField()
    reasons = serializers.ListField(child=serializers.CharField())
    body = serializers.CharField()


class AnalysisResponse(serializers.Serializer):
    raw_text = serializers.CharField(allow_blank=True)
    composition = serializers.CharField(allow_blank=True)
    ingredients = serializers.ListField(child=serializers.CharField())
    additive_codes = serializers.ListField(child=serializers.CharField())
    additives = AdditiveSerializer(many=True)
    allergens = serializers.ListField(child=serializers.CharField())
    hidden_sugars = serializers.ListField(child=serializers.CharField())
    enhancers = serializers.ListField(child=serializers.CharField())
    nutrients = serializers.DictField(child=serializers.FloatField(allow_null=True))
    traffic = serializers.DictField(child=serializers.CharField())
    verdict = VerdictSerializer()
    summary = serializers.CharField(allow_blank=True)
    source = serializers.CharField(required=False, allow_blank=True)
