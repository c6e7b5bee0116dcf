"""
Variantman API ViewSets.

Variant writes never touch the ORM directly: create/update drive a
VariantWizard non-interactively, destroy/set-default/verify go through
the Variants service. VariantError codes map to HTTP statuses:

    *_NOT_FOUND  → 404
    CODE_TAKEN   → 409
    anything else → 400
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from variantman.conf import get_catalog_backend
from variantman.exceptions import CodeCollisionError, VariantError
from variantman.models import Product, Variant
from variantman.service import Variants
from variantman.wizard import VariantWizard

from .serializers import (
    ProductSerializer,
    SuggestCodeSerializer,
    VariantSerializer,
    VariantVerifySerializer,
    VariantWriteSerializer,
)


def error_response(exc: VariantError) -> Response:
    if isinstance(exc, CodeCollisionError):
        code = status.HTTP_409_CONFLICT
    elif exc.code.endswith("_NOT_FOUND"):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_400_BAD_REQUEST
    return Response(exc.as_dict(), status=code)


def drive_wizard(wizard: VariantWizard, data: dict):
    """
    Replay a request payload as wizard events and commit.

    `attributes` replaces the selection: listed ids are selected with
    their values, every other attribute is deselected. Ids that do not
    belong to the product raise UNKNOWN_ATTRIBUTE from the wizard.
    """
    if "attributes" in data:
        attributes = data["attributes"]
        for definition in wizard.draft.selection.definitions:
            if definition.id not in attributes:
                wizard.deselect_attribute(definition.id)
        for attribute_id, value in attributes.items():
            wizard.select_attribute(attribute_id)
            wizard.set_value(attribute_id, value)

    if "name" in data:
        wizard.set_name(data["name"])
    if "code" in data:
        wizard.set_code(data["code"])
    elif data.get("regenerate_code"):
        wizard.regenerate_code()
    if "is_default" in data:
        wizard.set_default(data["is_default"])
    if "is_active" in data:
        wizard.set_active(data["is_active"])

    wizard.next()
    return wizard.save()


class ProductViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for Product (read-only).

    list: List products with their attributes
    retrieve: Get a specific product
    suggest_code: Suggest a code for an ad-hoc variant
    """

    permission_classes = [IsAuthenticated]
    queryset = Product.objects.prefetch_related("attributes")
    serializer_class = ProductSerializer

    @action(detail=True, methods=["post"], url_path="suggest-code")
    def suggest_code(self, request, pk=None):
        """
        Suggest a variant code from a name and descriptors.

        POST /api/variantman/products/{pk}/suggest-code/
        {
            "name": "Blue Edition",
            "color": "Blue",      // optional
            "size": "500",        // optional
            "size_unit": "ml"     // optional
        }
        """
        product = self.get_object()
        serializer = SuggestCodeSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            code = Variants.suggest_code(
                str(product.pk),
                serializer.validated_data["name"],
                color=serializer.validated_data.get("color"),
                size=serializer.validated_data.get("size"),
                size_unit=serializer.validated_data.get("size_unit"),
            )
        except VariantError as e:
            return error_response(e)
        return Response({"code": code})


class VariantViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Variant.

    list: List variants (?product=<id> to filter)
    create: Create a variant through the wizard
    retrieve: Get a specific variant
    update: Edit a variant through the wizard
    destroy: Delete a variant (default is handed over)
    set_default: Make the variant its product's default
    verify: Mark/unmark the variant as verified (staff only)
    """

    permission_classes = [IsAuthenticated]
    queryset = Variant.objects.select_related("product").prefetch_related("attribute_values")
    serializer_class = VariantSerializer

    def get_queryset(self):
        qs = super().get_queryset()
        product_id = self.request.query_params.get("product")
        if product_id:
            if not product_id.isdecimal():
                raise ValidationError({"product": ["A valid integer is required."]})
            qs = qs.filter(product_id=int(product_id))
        return qs

    def _respond(self, record, status_code=status.HTTP_200_OK) -> Response:
        variant = self.get_queryset().get(pk=record.id)
        return Response(VariantSerializer(variant).data, status=status_code)

    def create(self, request, *args, **kwargs):
        """
        Create a variant.

        POST /api/variantman/variants/
        {
            "product": 1,
            "attributes": {"3": "Golden", "4": "500ml"},
            "name": "",          // optional, synthesized from attributes
            "code": "",          // optional, derived from attributes
            "is_default": false, // optional
            "is_active": true    // optional
        }
        """
        serializer = VariantWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        if "product" not in data:
            return Response(
                {"product": ["This field is required."]},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            wizard = VariantWizard.open_add(get_catalog_backend(), str(data["product"]))
            record = drive_wizard(wizard, data)
        except VariantError as e:
            return error_response(e)
        return self._respond(record, status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        """
        Edit a variant. Omitted fields keep their current value.

        PUT/PATCH /api/variantman/variants/{pk}/
        {
            "attributes": {"3": "Silver"},
            "regenerate_code": true
        }
        """
        variant = self.get_object()
        serializer = VariantWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            wizard = VariantWizard.open_edit(get_catalog_backend(), str(variant.pk))
            record = drive_wizard(wizard, serializer.validated_data)
        except VariantError as e:
            return error_response(e)
        return self._respond(record)

    def destroy(self, request, *args, **kwargs):
        """
        Delete a variant.

        DELETE /api/variantman/variants/{pk}/
        """
        variant = self.get_object()
        try:
            Variants.delete(str(variant.pk))
        except VariantError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="set-default")
    def set_default(self, request, pk=None):
        """
        Make this variant the product's default.

        POST /api/variantman/variants/{pk}/set-default/
        """
        variant = self.get_object()
        try:
            record = Variants.set_default(str(variant.pk))
        except VariantError as e:
            return error_response(e)
        return self._respond(record)

    @action(detail=True, methods=["post"], permission_classes=[IsAdminUser])
    def verify(self, request, pk=None):
        """
        Mark or unmark the variant as verified.

        POST /api/variantman/variants/{pk}/verify/
        {
            "verified": true
        }
        """
        variant = self.get_object()
        serializer = VariantVerifySerializer(data=request.data)

        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            record = Variants.verify(
                str(variant.pk),
                serializer.validated_data["verified"],
                user=request.user,
            )
        except VariantError as e:
            return error_response(e)
        return self._respond(record)
