"""
Contact Serializers

Serializers for contact form submissions and the admin endpoints.
"""
from rest_framework import serializers

from .models import ContactSubmission
from .sanitizers import sanitize_submission


def _form_field(**kwargs):
    return serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        trim_whitespace=False,
        **kwargs
    )


class ContactFormSubmitSerializer(serializers.Serializer):
    """
    Public contact form submission serializer.

    Fields are parsed leniently; ``validate`` applies the ordered contact
    rules and raises ``ContactValidationError`` on the first failure.
    """

    name = _form_field(help_text="Name of the person contacting us")
    email = _form_field(help_text="Email address for follow-up")
    business = _form_field(help_text="Type of business")
    revenue = _form_field(help_text="Revenue range (optional)")
    automation = _form_field(help_text="What should be automated")

    def validate(self, attrs):
        return sanitize_submission(attrs)


class ContactSubmissionSerializer(serializers.ModelSerializer):
    """Stored submission as returned by the admin listing."""

    class Meta:
        model = ContactSubmission
        fields = [
            'id', 'name', 'email', 'business', 'revenue', 'automation',
            'created_at', 'ip_address', 'user_agent'
        ]
        read_only_fields = fields


class BusinessCountSerializer(serializers.Serializer):
    business = serializers.CharField()
    count = serializers.IntegerField()


class DateCountSerializer(serializers.Serializer):
    date = serializers.DateField()
    count = serializers.IntegerField()


class ContactAnalyticsSerializer(serializers.Serializer):
    """
    Serializer for contact submission analytics.
    """

    totalContacts = serializers.IntegerField(source='total_contacts')
    byBusinessType = BusinessCountSerializer(source='by_business', many=True)
    byDate = DateCountSerializer(source='by_date', many=True)
