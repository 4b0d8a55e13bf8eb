#
# Copyright (c), 2024-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
# @author Davide Brunato <brunato@sissa.it>
#
"""
An engine for XSD 1.0/1.1 validation based on xmlschema, with schema-aware
XPath 2.0 queries provided by elementpath.
"""
import os
from collections import OrderedDict
from collections.abc import Sequence
from typing import Any, Optional, Union

import xmlschema
from xmlschema import XMLSchema10, XMLSchema11, XMLSchemaException

from xmlconform.environments import ResolvedEnvironment
from xmlconform.exceptions import ConfigurationError, EngineError
from xmlconform.sequences import ValidationError, ValidationResult
from .elementpath_engine import ElementPathEngine

SCHEMA_CLASSES = {
    '1.0': XMLSchema10,
    '1.1': XMLSchema11,
}


class XMLSchemaEngine(ElementPathEngine):
    """
    Engine based on xmlschema. Queries are evaluated by elementpath's parsers,
    bound to the schema of the environment when it's available.

    :param xsd_version: the XSD version, '1.0' or '1.1'.
    :param xpath_version: the XPath version, '2.0' by default.
    :param cache_size: the max number of compiled schemas to keep cached.
    """
    name = 'xmlschema'
    description = 'XSD 1.0/1.1 with xmlschema and schema-aware XPath with elementpath'
    unsupported = ElementPathEngine.unsupported - {
        'schemaAware', 'schemaImport', 'schemaValidation', 'typedData'
    }

    def __init__(self, xsd_version: str = '1.1', xpath_version: str = '2.0',
                 cache_size: int = 8, **versions: Optional[str]) -> None:
        try:
            self.schema_class = SCHEMA_CLASSES[xsd_version]
        except KeyError:
            raise ConfigurationError(
                f"unsupported XSD version {xsd_version!r} for {self.name!r} engine "
                f"(available: {', '.join(SCHEMA_CLASSES)})"
            ) from None

        super().__init__(xpath_version=xpath_version, xsd=xsd_version, **versions)
        self.cache_size = cache_size
        self._schemas: OrderedDict[tuple[str, ...], Any] = OrderedDict()

    @property
    def library_version(self) -> str:
        return xmlschema.__version__

    def load_schema(self, source: Union[str, Sequence[str]]) -> Any:
        sources = (source,) if isinstance(source, str) else tuple(source)
        if not sources:
            raise EngineError("no schema documents to load")

        try:
            self.schema = self._schemas[sources]
            self._schemas.move_to_end(sources)
        except KeyError:
            try:
                if len(sources) == 1:
                    schema = self.schema_class(sources[0])
                else:
                    schema = self.schema_class(list(sources))
            except (XMLSchemaException, OSError, ValueError) as err:
                raise EngineError.from_exception(err) from err
            except SyntaxError as err:
                # an XML parse error of a schema document
                raise EngineError(f"not well-formed schema document: {err}") from None

            self.schema = self._schemas[sources] = schema
            if len(self._schemas) > self.cache_size:
                self._schemas.popitem(last=False)
        return self.schema

    def validate(self, document: Any, schema: Any = None) -> ValidationResult:
        if schema is None:
            schema = self.schema
            if schema is None:
                raise EngineError("no schema loaded for validation")

        if isinstance(document, str) and os.path.isfile(document):
            document = self.parse_file(document)

        errors = []
        try:
            for err in schema.iter_errors(document):
                errors.append(ValidationError(
                    err.reason or str(err.message), getattr(err, 'sourceline', None)
                ))
        except XMLSchemaException as err:
            raise EngineError.from_exception(err) from err

        return ValidationResult(not errors, tuple(errors), version=self.declared_version('xsd'))

    def get_schema_proxy(self, environment: Optional[ResolvedEnvironment]) -> Any:
        if environment is None or not environment.schema_files:
            return None
        elif self.parser_class.version == '1.0':
            return None
        return self.load_schema(environment.schema_files).xpath_proxy
