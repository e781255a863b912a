"""
tests/test_templates.py
Unit tests for entitygen.templates (template data + TypeScript backend).

Tests cover:
- Render-ready data: imports, decorators, enums, schemas
- Base file content (columns, relations, polymorphic accessors)
- Extension file content (entity binding, indexes, base import)
- Unknown template names
- Determinism
"""

from __future__ import annotations

from typing import Any, Dict

import pytest

from entitygen.errors import TemplateNotFoundError
from entitygen.generator import EntityCompiler
from entitygen.models import CompiledEntity, CompilerConfig
from entitygen.templates import (
    BASE_TEMPLATE,
    EXTENSION_TEMPLATE,
    TemplateGenerator,
    build_template_data,
    enum_member_name,
    graphql_type_expr,
    index_decorator,
)


@pytest.fixture()
def post_compiled(post_entity) -> CompiledEntity:
    return EntityCompiler().compile(post_entity)


@pytest.fixture()
def comment_compiled(comment_entity) -> CompiledEntity:
    return EntityCompiler().compile(comment_entity)


@pytest.fixture()
def generator() -> TemplateGenerator:
    return TemplateGenerator()


# ===========================================================================
# Helpers
# ===========================================================================


class TestHelpers:
    """Small rendering helpers."""

    @pytest.mark.parametrize(
        "api_type, expected",
        [
            ("String", "String"),
            ("[String!]", "[String]"),
            ("[PostLabel!]", "[PostLabel]"),
            ("GraphQLJSON", "GraphQLJSON"),
            ("ID", "ID"),
        ],
    )
    def test_graphql_type_expr(self, api_type: str, expected: str) -> None:
        assert graphql_type_expr(api_type) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("draft", "DRAFT"),
            ("in-review", "IN_REVIEW"),
            ("inReview", "IN_REVIEW"),
            ("2fa", "V_2FA"),
            ("", "EMPTY"),
        ],
    )
    def test_enum_member_name(self, value: str, expected: str) -> None:
        assert enum_member_name(value) == expected

    def test_index_decorator(self) -> None:
        assert index_decorator("Post", ["title", "status"]) == (
            "@Index(\"IDX_post_title_status\", ['title', 'status'])"
        )


# ===========================================================================
# Template data
# ===========================================================================


class TestTemplateData:
    """build_template_data output."""

    def test_names_and_paths(self, post_compiled: CompiledEntity) -> None:
        data = build_template_data(post_compiled)
        assert data["class_name"] == "Post"
        assert data["base_class_name"] == "PostBase"
        assert data["table_name"] == "posts"
        assert data["base_import_path"] == "./__generated__/PostBase.js"
        assert data["operations"] == ["create", "list", "single"]

    def test_comment_imports(self, comment_compiled: CompiledEntity) -> None:
        imports = build_template_data(comment_compiled)["imports"]
        assert imports == [
            "import { Column, JoinColumn, ManyToOne } from 'typeorm';",
            "import { Field, ID, ObjectType } from 'type-graphql';",
            "import { IsString, ValidateNested } from 'class-validator';",
            "import { Post } from '../Post.js';",
        ]

    def test_post_imports(self, post_compiled: CompiledEntity) -> None:
        imports = build_template_data(post_compiled)["imports"]
        assert imports[0] == (
            "import { Column, FindOneOptions, JoinColumn, ManyToOne, ObjectLiteral, "
            "OneToMany } from 'typeorm';"
        )
        assert imports[1] == (
            "import { Field, ID, ObjectType, registerEnumType } from 'type-graphql';"
        )
        assert "import { GraphQLJSON, GraphQLJSONObject } from 'graphql-type-json';" in imports
        assert "import { z } from 'zod';" in imports
        assert "import { DataSourceProvider } from '../../DataSourceProvider.js';" in imports
        assert imports[-2:] == [
            "import { Comment } from '../Comment.js';",
            "import { User } from '../User.js';",
        ]

    def test_custom_directories(self, comment_compiled: CompiledEntity) -> None:
        config = CompilerConfig(base_dir="src/gen", extension_dir="src/models")
        data = build_template_data(comment_compiled, config)
        assert data["base_import_path"] == "../gen/CommentBase.js"
        assert "import { Post } from '../models/Post.js';" in data["imports"]

    def test_self_relation_not_imported(self, parser) -> None:
        entity = parser.parse_mapping({
            "name": "Node",
            "fields": {"parent": {"relation": {"entity": "Node", "type": "many-to-one"}}},
        })
        imports = build_template_data(EntityCompiler().compile(entity))["imports"]
        assert not any("Node.js" in line for line in imports)

    def test_json_schema_registry(self, post_compiled: CompiledEntity) -> None:
        data = build_template_data(post_compiled)
        assert data["json_schemas"] == [
            {"column": "attachments", "schema": "PostAttachmentsSchema"},
            {"column": "settings", "schema": "PostSettingsSchema"},
            {"column": "tags", "schema": "PostTagsSchema"},
        ]

    def test_enum_data(self, post_compiled: CompiledEntity) -> None:
        enum = build_template_data(post_compiled)["enums"][0]
        assert enum["name"] == "PostStatus"
        assert enum["description"] == "PostStatus options"
        assert enum["members"] == [
            ("DRAFT", "draft"),
            ("PUBLISHED", "published"),
            ("IN_REVIEW", "in-review"),
        ]

    def test_data_is_deterministic(self, post_compiled: CompiledEntity) -> None:
        assert build_template_data(post_compiled) == build_template_data(post_compiled)


# ===========================================================================
# Base template
# ===========================================================================


class TestBaseTemplate:
    """The regenerated <Name>Base.ts file."""

    def test_comment_base(self, generator, comment_compiled: CompiledEntity) -> None:
        text = generator.render(BASE_TEMPLATE, build_template_data(comment_compiled))
        assert "@ObjectType({ isAbstract: true })" in text
        assert "export abstract class CommentBase {" in text
        assert (
            "  @Field(() => ID, { description: 'Foreign key for postId' })\n"
            "  @Column({ type: 'varchar' })\n"
            "  @IsString()\n"
            "  postId!: string;"
        ) in text
        assert (
            "  @Field(() => Post, { description: 'postId (Post)', nullable: false })\n"
            "  @ManyToOne(() => Post, { cascade: ['insert', 'update'], onDelete: 'CASCADE' })\n"
            "  @JoinColumn({ name: 'postId' })\n"
            "  @ValidateNested()\n"
            "  postId!: Promise<Post>;"
        ) in text
        assert text.endswith("}\n")

    def test_post_enum_block(self, generator, post_compiled: CompiledEntity) -> None:
        text = generator.render(BASE_TEMPLATE, build_template_data(post_compiled))
        assert (
            "export enum PostStatus {\n"
            "  DRAFT = 'draft',\n"
            "  PUBLISHED = 'published',\n"
            "  IN_REVIEW = 'in-review',\n"
            "}"
        ) in text
        assert (
            "registerEnumType(PostStatus, { name: 'PostStatus', description: 'PostStatus options' });"
        ) in text

    def test_post_columns(self, generator, post_compiled: CompiledEntity) -> None:
        text = generator.render(BASE_TEMPLATE, build_template_data(post_compiled))
        assert "@ObjectType({ isAbstract: true, description: 'A blog post' })" in text
        assert (
            "  @Field(() => PostStatus)\n"
            "  @Column({ type: 'text', default: 'draft' })\n"
            "  @IsIn(['draft', 'published', 'in-review'])\n"
            "  status!: PostStatus;"
        ) in text
        assert "  @Field(() => [String], { nullable: true })" in text
        assert "  tags?: string[];" in text
        assert "  @Field(() => GraphQLJSON, { nullable: true })" in text
        assert "  attachments?: PostAttachmentType[];" in text
        assert "  settings?: Record<string, any>;" in text
        assert "  @Column({ type: 'varchar', nullable: true, length: 36 })" in text
        assert "  ownerId?: string;" in text

    def test_post_schemas_and_interfaces(self, generator, post_compiled: CompiledEntity) -> None:
        text = generator.render(BASE_TEMPLATE, build_template_data(post_compiled))
        assert "export interface PostAttachmentType {\n  url: string;\n  size?: number;\n}" in text
        assert "const PostAttachmentTypeSchema = z.object({" in text
        assert "const PostTagsSchema = z.array(z.string().max(30)).max(10)" in text
        assert (
            "  static readonly jsonSchemas = {\n"
            "    attachments: PostAttachmentsSchema,\n"
            "    settings: PostSettingsSchema,\n"
            "    tags: PostTagsSchema,\n"
            "  };"
        ) in text
        # Schemas are declared before the class that references them.
        assert text.index("const PostTagsSchema") < text.index("export abstract class PostBase")

    def test_post_relations(self, generator, post_compiled: CompiledEntity) -> None:
        text = generator.render(BASE_TEMPLATE, build_template_data(post_compiled))
        assert "  @ManyToOne(() => User, { eager: true })" in text
        assert "  @JoinColumn({ name: 'authorId' })" in text
        assert "  author!: User;" in text
        assert "  @Field(() => [Comment], { description: 'comments (Comment)', nullable: true })" in text
        assert "  @OneToMany(() => Comment, { cascade: ['insert'] })" in text
        assert "  @IsOptional()\n  @ValidateNested()\n  comments?: Promise<Comment[]>;" in text

    def test_polymorphic_accessor(self, generator, post_compiled: CompiledEntity) -> None:
        text = generator.render(BASE_TEMPLATE, build_template_data(post_compiled))
        assert "  async getOwner<T extends ObjectLiteral>(): Promise<T | null> {" in text
        assert "    if (!this.ownerId || !this.ownerType) {" in text
        assert "DataSourceProvider.get().getRepository<T>(this.ownerType);" in text
        assert "findOne({ where: { id: this.ownerId } } as FindOneOptions<T>);" in text

    def test_hidden_field_has_no_graphql_decorator(self, generator, parser) -> None:
        entity = parser.parse_mapping({
            "name": "Account",
            "fields": {"secret": {"type": "string", "graphql": False, "default": ""}},
        })
        data = build_template_data(EntityCompiler().compile(entity))
        text = generator.render(BASE_TEMPLATE, data)
        assert "@Field(" not in text
        assert "import { ObjectType } from 'type-graphql';" in text
        assert "  @Column({ type: 'varchar', default: '' })\n  @IsString()\n  secret!: string;" in text

    def test_multiline_description_stays_on_one_line(self, generator, parser) -> None:
        entity = parser.parse_mapping({
            "name": "Note",
            "fields": {"title": {"type": "string", "description": "line one\nline two"}},
        })
        data = build_template_data(EntityCompiler().compile(entity))
        text = generator.render(BASE_TEMPLATE, data)
        assert "@Field(() => String, { description: 'line one\\nline two' })" in text
        assert "line one\nline two" not in text


# ===========================================================================
# Extension template
# ===========================================================================


class TestExtensionTemplate:
    """The user-owned <Name>.ts stub."""

    def test_post_extension(self, generator, post_compiled: CompiledEntity) -> None:
        text = generator.render(EXTENSION_TEMPLATE, build_template_data(post_compiled))
        assert "import { Entity, Index } from 'typeorm';" in text
        assert "import { PostBase } from './__generated__/PostBase.js';" in text
        assert (
            "@ObjectType({ description: 'A blog post' })\n"
            "@Entity('posts')\n"
            "@Index(\"IDX_post_title\", ['title'])\n"
            "@Index(\"IDX_post_title_status\", ['title', 'status'])\n"
            "export class Post extends PostBase {"
        ) in text

    def test_comment_extension_without_indexes(self, generator, comment_compiled) -> None:
        text = generator.render(EXTENSION_TEMPLATE, build_template_data(comment_compiled))
        assert "import { Entity } from 'typeorm';" in text
        assert "@ObjectType()\n@Entity('comments')\nexport class Comment extends CommentBase {" in text


# ===========================================================================
# Renderer contract
# ===========================================================================


class TestTemplateGenerator:
    """render(name, data) contract."""

    def test_template_names(self, generator) -> None:
        assert generator.template_names == ["base", "extension"]

    def test_unknown_template(self, generator, comment_compiled: CompiledEntity) -> None:
        data: Dict[str, Any] = build_template_data(comment_compiled)
        with pytest.raises(TemplateNotFoundError) as exc_info:
            generator.render("resolver", data)
        assert exc_info.value.entity == "Comment"
        assert isinstance(exc_info.value, KeyError)

    def test_render_is_deterministic(self, generator, post_entity) -> None:
        first = generator.render(BASE_TEMPLATE, build_template_data(EntityCompiler().compile(post_entity)))
        second = generator.render(BASE_TEMPLATE, build_template_data(EntityCompiler().compile(post_entity)))
        assert first == second
