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
Execution environments of test cases: definitions, as read from catalogs,
and their resolution to concrete documents loaded by an engine.
"""
import os
import logging
from collections import ChainMap, OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from xmlconform.exceptions import CatalogError, EngineError, EnvironmentNotFoundError, \
    SourceLoadError
from xmlconform.etree import ElementType, iter_children, find_child, get_attribute
from xmlconform.protocols import EngineProtocol

logger = logging.getLogger('xmlconform')

CONTEXT_ROLE = '.'
PLACEHOLDER_DOCUMENT = '<empty/>'


@dataclass(frozen=True, slots=True)
class Source:
    """
    A source document of an environment.

    :param role: '.' for the context item, '$name' for a variable binding.
    :param file: the path of the document, relative to the declaring file.
    :param content: the inline content of the document.
    :param uri: the URI the document is available at, e.g. for fn:doc().
    :param validation: the validation mode declared for the source.
    """
    role: Optional[str] = None
    file: Optional[str] = None
    content: Optional[str] = None
    uri: Optional[str] = None
    validation: Optional[str] = None

    def __str__(self) -> str:
        return '<source role="{}" uri="{}" file="{}"/>'.format(
            self.role or '', self.uri or '', self.file or ''
        )


@dataclass(frozen=True, slots=True)
class Param:
    name: str
    select: Optional[str] = None
    as_type: Optional[str] = None
    declared: bool = False


@dataclass(frozen=True, slots=True)
class SchemaRef:
    uri: Optional[str] = None
    file: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Collection:
    uri: Optional[str] = None
    sources: tuple[Source, ...] = ()


@dataclass(frozen=True)
class Environment:
    """
    An execution environment definition. Immutable after catalog parsing.

    :param name: the name of the environment, `None` for inline environments.
    :param sources: the ordered source documents.
    :param namespaces: the namespace bindings, a map from prefixes to URIs.
    :param params: the external parameters.
    :param schemas: the schema references.
    :param collections: the collections of documents.
    :param static_base_uri: the declared static base URI.
    :param stylesheet: the path of a stylesheet, for transform tests.
    :param base_dir: the directory of the file that declares the environment.
    """
    name: Optional[str] = None
    sources: tuple[Source, ...] = ()
    namespaces: Mapping[str, str] = field(default_factory=dict)
    params: tuple[Param, ...] = ()
    schemas: tuple[SchemaRef, ...] = ()
    collections: tuple[Collection, ...] = ()
    static_base_uri: Optional[str] = None
    stylesheet: Optional[str] = None
    base_dir: str = ''

    def __repr__(self) -> str:
        return '%s(name=%r)' % (self.__class__.__name__, self.name)

    def resolve_path(self, path: str) -> str:
        return os.path.normpath(os.path.join(self.base_dir, path))

    def get_context_source(self, first_source_fallback: bool = False) -> Optional[Source]:
        """
        Returns the context item source. If `first_source_fallback` is `True`
        and there is no context item source, the first source is returned.

        :raises CatalogError: if the environment has more context item sources.
        """
        sources = [x for x in self.sources if x.role == CONTEXT_ROLE]
        if len(sources) > 1:
            raise CatalogError(
                f"duplicate context item source in environment {self.name or 'inline'!r}"
            )
        elif sources:
            return sources[0]
        elif first_source_fallback and self.sources:
            return self.sources[0]
        return None


EMPTY_ENVIRONMENT = Environment()

EnvironmentRefType = Union[None, str, Environment]


###
# Parsing of environment definitions

def parse_source(elem: ElementType) -> Source:
    content = find_child(elem, 'content')
    return Source(
        role=get_attribute(elem, 'role'),
        file=get_attribute(elem, 'file'),
        content=content.text if content is not None else None,
        uri=get_attribute(elem, 'uri'),
        validation=get_attribute(elem, 'validation'),
    )


def parse_param(elem: ElementType) -> Param:
    try:
        name = elem.attrib['name']
    except KeyError:
        raise CatalogError("missing 'name' attribute in a <param> element") from None

    return Param(
        name=name,
        select=get_attribute(elem, 'select'),
        as_type=get_attribute(elem, 'as'),
        declared=get_attribute(elem, 'declared') in ('true', '1'),
    )


def parse_environment(elem: ElementType, base_dir: str) -> Environment:
    """
    Builds an environment from an <environment> element. Works for both
    query-test and transform-test catalogs, matching elements by local name.

    :param elem: the environment element.
    :param base_dir: the directory of the file that contains the element.
    """
    namespaces: dict[str, str] = {}
    for child in iter_children(elem, 'namespace'):
        prefix = get_attribute(child, 'prefix', '')
        uri = get_attribute(child, 'uri', '')
        assert prefix is not None and uri is not None
        if prefix in namespaces and namespaces[prefix] != uri:
            logger.warning("prefix %r rebound in environment %r",
                           prefix, elem.get('name'))
        namespaces[prefix] = uri

    collections = []
    for child in iter_children(elem, 'collection'):
        collections.append(Collection(
            uri=get_attribute(child, 'uri'),
            sources=tuple(parse_source(e) for e in iter_children(child, 'source')),
        ))

    static_base_uri = None
    child = find_child(elem, 'static-base-uri')
    if child is not None:
        static_base_uri = get_attribute(child, 'uri')

    stylesheet = None
    child = find_child(elem, 'stylesheet')
    if child is not None:
        stylesheet = get_attribute(child, 'file')

    return Environment(
        name=elem.get('name'),
        sources=tuple(parse_source(e) for e in iter_children(elem, 'source')),
        namespaces=namespaces,
        params=tuple(parse_param(e) for e in iter_children(elem, 'param')),
        schemas=tuple(SchemaRef(get_attribute(e, 'uri'), get_attribute(e, 'file'))
                      for e in iter_children(elem, 'schema')),
        collections=tuple(collections),
        static_base_uri=static_base_uri,
        stylesheet=stylesheet,
        base_dir=base_dir,
    )


def parse_environments(elem: ElementType, base_dir: str) -> dict[str, Environment]:
    """Parses the named environments that are children of an element."""
    environments = {}
    for child in iter_children(elem, 'environment'):
        if 'ref' in child.attrib:
            continue
        environment = parse_environment(child, base_dir)
        if environment.name is None:
            raise CatalogError("a global environment must have a name")
        environments[environment.name] = environment
    return environments


###
# Resolution of environments

@dataclass
class ResolvedEnvironment:
    """
    A concrete environment for executing a test case, with documents loaded
    by the active engine.
    """
    environment: Environment
    context_document: Any = None
    is_placeholder: bool = False
    variables: dict[str, Any] = field(default_factory=dict)
    documents: dict[str, Any] = field(default_factory=dict)
    collections: dict[str, list[Any]] = field(default_factory=dict)
    default_collection: Optional[list[Any]] = None
    namespaces: dict[str, str] = field(default_factory=dict)
    base_uri: Optional[str] = None
    schema_files: list[str] = field(default_factory=list)
    stylesheet: Optional[str] = None

    @property
    def params(self) -> tuple[Param, ...]:
        return self.environment.params


class EnvironmentResolver:
    """
    Resolves environment references of test cases and loads their documents
    using an engine. Source documents are cached by path within a run.

    :param engine: the engine used for loading documents.
    :param environments: the global environments of the catalog.
    :param cache_size: the max number of source documents to keep cached.
    """
    def __init__(self, engine: EngineProtocol,
                 environments: Optional[Mapping[str, Environment]] = None,
                 cache_size: int = 64) -> None:
        self.engine = engine
        self.environments = environments if environments is not None else {}
        self.cache_size = cache_size
        self._documents: OrderedDict[str, Any] = OrderedDict()
        self._placeholder: Any = None

    def __repr__(self) -> str:
        return '%s(engine=%r)' % (self.__class__.__name__, self.engine.name)

    def clear(self) -> None:
        self._documents.clear()
        self._placeholder = None

    def lookup(self, reference: EnvironmentRefType,
               local_environments: Optional[Mapping[str, Environment]] = None) \
            -> Environment:
        """
        Gets the environment definition for a reference. A local environment
        shadows a global one with the same name.

        :raises EnvironmentNotFoundError: if a named reference can't be resolved.
        """
        if reference is None:
            return EMPTY_ENVIRONMENT
        elif isinstance(reference, Environment):
            return reference

        environments = ChainMap(dict(local_environments or {}), dict(self.environments))
        try:
            return environments[reference]
        except KeyError:
            raise EnvironmentNotFoundError(reference) from None

    def resolve(self, reference: EnvironmentRefType,
                local_environments: Optional[Mapping[str, Environment]] = None,
                base_dir: Optional[str] = None,
                first_source_fallback: bool = False) -> ResolvedEnvironment:
        """
        Resolves an environment reference to a concrete environment. Without
        a context item source an empty placeholder document is used.

        :param reference: a name, an inline environment or `None`.
        :param local_environments: the environments of the test set.
        :param base_dir: the directory of the test set, used for the default \
        static base URI.
        :param first_source_fallback: use the first source as context item \
        if there is no source with role '.'.
        """
        environment = self.lookup(reference, local_environments)
        resolved = ResolvedEnvironment(environment, namespaces=dict(environment.namespaces))

        context_source = environment.get_context_source(first_source_fallback)
        if context_source is not None:
            resolved.context_document = self.load_source(context_source, environment)
        else:
            resolved.context_document = self.get_placeholder()
            resolved.is_placeholder = True

        for source in environment.sources:
            if source is context_source and not source.uri:
                continue

            document = self.load_source(source, environment)
            if source.role and source.role.startswith('$'):
                resolved.variables[source.role[1:]] = document
            if source.uri:
                resolved.documents[source.uri] = document

        for collection in environment.collections:
            documents = [self.load_source(x, environment) for x in collection.sources]
            if collection.uri is not None:
                resolved.collections[collection.uri] = documents
            if resolved.default_collection is None:
                resolved.default_collection = documents

        if environment.static_base_uri is not None:
            resolved.base_uri = environment.static_base_uri
        elif base_dir is not None and os.path.isdir(base_dir):
            resolved.base_uri = f'{Path(base_dir).absolute().as_uri()}/'

        resolved.schema_files.extend(
            environment.resolve_path(x.file) for x in environment.schemas if x.file
        )
        if environment.stylesheet is not None:
            resolved.stylesheet = environment.resolve_path(environment.stylesheet)
        return resolved

    def get_placeholder(self) -> Any:
        if self._placeholder is None:
            self._placeholder = self.engine.parse(PLACEHOLDER_DOCUMENT)
        return self._placeholder

    def load_source(self, source: Source, environment: Environment) -> Any:
        """
        Loads a source document with the engine.

        :raises SourceLoadError: if the document is missing or not parsable.
        """
        if source.content is not None:
            try:
                return self.engine.parse(source.content, base_uri=environment.base_dir)
            except EngineError as err:
                raise SourceLoadError(f"cannot parse inline source: {err}") from None
        elif source.file is None:
            raise SourceLoadError(f"source {source} has neither a file nor a content")

        path = environment.resolve_path(source.file)
        try:
            document = self._documents[path]
        except KeyError:
            pass
        else:
            self._documents.move_to_end(path)
            return document

        if not os.path.isfile(path):
            raise SourceLoadError(f"source file {path!r} not found", path)

        try:
            document = self.engine.parse_file(path)
        except EngineError as err:
            raise SourceLoadError(f"cannot parse source file {path!r}: {err}", path) from None

        logger.debug("loaded source document %r", path)
        self._documents[path] = document
        if len(self._documents) > self.cache_size:
            self._documents.popitem(last=False)
        return document
