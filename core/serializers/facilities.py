from rest_framework import serializers


class NearbyQuerySerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    radius = serializers.FloatField(min_value=1, max_value=100, required=False, default=50)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False, default=20)
    emergency = serializers.BooleanField(required=False, default=False)


class FacilityListQuerySerializer(serializers.Serializer):
    region = serializers.CharField(max_length=100, required=False)
    level = serializers.ChoiceField(choices=['primary', 'secondary', 'tertiary'], required=False)
    search = serializers.CharField(max_length=64, required=False)
    emergency = serializers.BooleanField(required=False, default=False)
