"""Tests for the entry-file import rewriters."""

from pathlib import Path

import pytest

from module_pack.errors import UnsupportedConfigurationError
from module_pack.rewriter import (
    FastApiImportRewriter,
    GenericImportRewriter,
    Vue3ImportRewriter,
    get_generic_rewriter,
    get_rewriter,
    process_entry_file,
)
from module_pack.rewriter.vue_rewriter import import_prefixes, is_route_object_start, module_from_specifier

FIXTURES = Path(__file__).parent / "fixtures"


# ── FastAPI ───────────────────────────────────────────────────

class TestFastApiRewriter:
    def setup_method(self):
        self.rw = FastApiImportRewriter()

    def test_entry_file(self):
        assert self.rw.entry_file == "main.py"

    def test_alias_kept_when_selected(self):
        src = (
            "from modules.auth.routes import router as auth_router\n"
            "app.include_router(auth_router)\n"
        )
        assert self.rw.rewrite(src, ["auth"], "modules") == src

    def test_alias_dropped_when_not_selected(self):
        src = (
            "from modules.auth.routes import router as auth_router\n"
            "app.include_router(auth_router)\n"
        )
        assert self.rw.rewrite(src, ["billing"], "modules") == ""

    def test_bulk_import_partial(self):
        src = "from modules import auth, billing, users\n"
        out = self.rw.rewrite(src, ["auth", "users"], "modules")
        assert out == "from modules import auth, users\n"

    def test_bulk_import_partial_keeps_spacing(self):
        assert self.rw.rewrite(
            "from modules import auth,billing,users\n", ["auth", "users"], "modules",
        ) == "from modules import auth,users\n"
        assert self.rw.rewrite(
            "from modules import billing,  auth\n", ["auth"], "modules",
        ) == "from modules import auth\n"
        assert self.rw.rewrite(
            "from modules import auth, billing    # core\n", ["auth"], "modules",
        ) == "from modules import auth    # core\n"

    def test_bulk_import_all_or_nothing(self):
        src = "from modules import auth, billing\n"
        assert self.rw.rewrite(src, ["auth", "billing"], "modules") == src
        assert self.rw.rewrite(src, ["users"], "modules") == ""

    def test_bulk_import_aliases_and_registration(self):
        src = (
            "from modules import auth as a, billing as b\n"
            "app.include_router(a.router)\n"
            "app.include_router(b.router)\n"
        )
        out = self.rw.rewrite(src, ["billing"], "modules")
        assert out == "from modules import billing as b\napp.include_router(b.router)\n"

    def test_survivors_in_original_order(self):
        modules = ["m1", "m2", "m3", "m4", "m5"]
        lines = [f"from modules.{m}.routes import router as {m}_router" for m in modules]
        lines += [f"app.include_router({m}_router)" for m in modules]
        src = "\n".join(lines) + "\n"
        keep = ["m4", "m2"]
        out = self.rw.rewrite(src, keep, "modules").splitlines()
        expected = [line for line in lines if "m2" in line or "m4" in line]
        assert out == expected

    def test_router_suffix_convention(self):
        src = "from modules import users\napp.include_router(users_router)\n"
        assert self.rw.rewrite(src, ["auth"], "modules") == ""

    def test_dotted_router_reference(self):
        src = (
            "from modules.users import routes\n"
            "app.include_router(routes.router)\n"
            "app.include_router(modules.billing.routes.router)\n"
        )
        out = self.rw.rewrite(src, ["users"], "modules")
        assert out == "from modules.users import routes\napp.include_router(routes.router)\n"

    def test_unresolvable_router_kept(self):
        src = "app.include_router(health_router)\n"
        assert self.rw.rewrite(src, [], "modules") == src

    def test_plain_import(self):
        src = (
            "import os, modules.auth.routes as auth_routes, modules.billing.routes\n"
            "app.include_router(auth_routes.router)\n"
        )
        out = self.rw.rewrite(src, ["billing"], "modules")
        assert out == "import os, modules.billing.routes\n"

    def test_multiline_bulk_import(self):
        src = (
            "from modules import (\n"
            "    auth,\n"
            "    billing,\n"
            "    users,\n"
            ")\n"
        )
        out = self.rw.rewrite(src, ["auth", "users"], "modules")
        assert out == "from modules import (\n    auth,\n    users,\n)\n"

    def test_multiline_include_router(self):
        src = (
            "from modules.billing.routes import router as billing_router\n"
            "app.include_router(\n"
            "    billing_router,\n"
            "    prefix=\"/billing\",\n"
            ")\n"
            "app.include_router(health)\n"
        )
        assert self.rw.rewrite(src, [], "modules") == "app.include_router(health)\n"

    def test_comment_lines_untouched(self):
        src = (
            "# from modules.billing.routes import router\n"
            "# app.include_router(billing_router)\n"
            "from modules.auth.routes import router\n"
        )
        out = self.rw.rewrite(src, ["auth"], "modules")
        assert out == src

    def test_non_module_lines_preserved(self):
        src = "from fastapi import FastAPI\n\napp = FastAPI()\n"
        assert self.rw.rewrite(src, [], "modules") == src

    def test_nested_modules_dir(self):
        src = "from app.modules.auth.routes import router\nfrom app.modules.billing import x\n"
        out = self.rw.rewrite(src, ["auth"], "app/modules")
        assert out == "from app.modules.auth.routes import router\n"

    def test_no_trailing_newline_preserved(self):
        src = "from modules.auth import x\nprint(1)"
        assert self.rw.rewrite(src, [], "modules") == "print(1)"

    def test_empty_content(self):
        assert self.rw.rewrite("", ["auth"], "modules") == ""

    def test_alias_map_later_binding_wins(self):
        src = (
            "from modules.auth.routes import router\n"
            "from modules.users.routes import router\n"
        )
        aliases = self.rw.collect_aliases(src, "modules")
        assert aliases["router"] == "users"
        assert aliases["auth"] == "auth"

    def test_fixture_main(self):
        src = (FIXTURES / "fastapi_project" / "main.py").read_text()
        out = self.rw.rewrite(src, ["billing", "auth", "users"], "modules")
        assert "reports" not in out
        assert "app.include_router(billing_routes.router, prefix=\"/billing\")" in out
        assert "from core.config import settings" in out


# ── Vue 3 ─────────────────────────────────────────────────────

VUE_ROUTER = """\
import { createRouter, createWebHistory } from 'vue-router'
import Layout from '@/layout/index.vue'
import Dashboard from '@/views/dashboard/index.vue'
import Settings from '@/views/settings/index.vue'

const Login = () => import('@/views/login/index.vue')

const routes = [
  {
    path: '/login',
    component: Login,
  },
  {
    path: '/settings',
    component: Settings,
  },
  {
    path: '/',
    component: Layout,
    children: [
      {
        path: 'dashboard',
        component: Dashboard,
      },
      {
        path: 'system/user',
        component: () => import('@/views/system/user/index.vue'),
      },
    ],
  },
]

export default createRouter({ history: createWebHistory(), routes })
"""


class TestVue3Rewriter:
    def setup_method(self):
        self.rw = Vue3ImportRewriter()

    def test_entry_file(self):
        assert self.rw.entry_file == "src/router/index.ts"

    def test_prefixes(self):
        assert import_prefixes("src/views", "src/router/index.ts") == ["@/views", "../views"]
        assert import_prefixes("src/pages", "src/router/index.ts") == ["@/pages", "../pages"]

    def test_module_from_specifier(self):
        prefixes = ["@/views", "../views"]
        assert module_from_specifier("@/views/dashboard/index.vue", prefixes) == "dashboard"
        assert module_from_specifier("@/views/system/user/index.vue", prefixes) == "system"
        assert module_from_specifier("../views/login/index.vue", prefixes) == "login"
        assert module_from_specifier("@/views/login", prefixes) == "login"
        assert module_from_specifier("@/views/NotFound.vue", prefixes) is None
        assert module_from_specifier("@/components/Button.vue", prefixes) is None

    def test_route_object_start(self):
        assert is_route_object_start("{")
        assert is_route_object_start("{ path: '/a', component: A },")
        assert is_route_object_start("{ name : 'x'")
        assert not is_route_object_start("{ createRouter } = x")
        assert not is_route_object_start("const a = {")

    def test_static_import_and_route_removed(self):
        out = self.rw.rewrite(VUE_ROUTER, ["dashboard", "system", "login"], "src/views")
        assert "Settings" not in out
        assert "path: '/settings'" not in out
        assert "import Dashboard" in out

    def test_lazy_const_and_route_removed(self):
        out = self.rw.rewrite(VUE_ROUTER, ["dashboard", "settings"], "src/views")
        assert "const Login" not in out
        assert "path: '/login'" not in out

    def test_nested_child_removed_parent_kept(self):
        out = self.rw.rewrite(VUE_ROUTER, ["dashboard"], "src/views")
        assert "path: 'dashboard'" in out
        assert "system/user" not in out
        assert "component: Layout," in out
        # the brace structure of the kept parent stays intact
        assert out.count("{") - out.count("}") == VUE_ROUTER.count("{") - VUE_ROUTER.count("}")

    def test_parent_dropped_when_all_children_excluded(self):
        out = self.rw.rewrite(VUE_ROUTER, ["settings"], "src/views")
        assert "component: Layout" not in out
        assert "path: '/settings'" in out
        assert "import Layout from '@/layout/index.vue'" in out

    def test_all_selected_is_identity(self):
        out = self.rw.rewrite(VUE_ROUTER, ["dashboard", "settings", "login", "system"], "src/views")
        assert out == VUE_ROUTER

    def test_non_module_imports_preserved(self):
        out = self.rw.rewrite(VUE_ROUTER, [], "src/views")
        assert "import { createRouter, createWebHistory } from 'vue-router'" in out
        assert "export default createRouter" in out

    def test_single_line_route_objects(self):
        src = (
            "const routes = [\n"
            "  { path: '/a', component: () => import('@/views/a/index.vue') },\n"
            "  { path: '/b', component: () => import('../views/b/index.vue') },\n"
            "]\n"
        )
        out = self.rw.rewrite(src, ["b"], "src/views")
        assert out == (
            "const routes = [\n"
            "  { path: '/b', component: () => import('../views/b/index.vue') },\n"
            "]\n"
        )

    def test_named_import(self):
        src = "import { UserList } from '@/views/users/list'\nimport { Other } from '@/views/other/x'\n"
        out = self.rw.rewrite(src, ["users"], "src/views")
        assert out == "import { UserList } from '@/views/users/list'\n"

    def test_multiline_named_import(self):
        src = (
            "import {\n"
            "  Dashboard,\n"
            "  DashboardCard,\n"
            "} from '@/views/dashboard/index.vue'\n"
            "import { Login } from '@/views/login/index.vue'\n"
            "  { path: '/', component: Dashboard },\n"
        )
        out = self.rw.rewrite(src, ["login"], "src/views")
        assert out == "import { Login } from '@/views/login/index.vue'\n"
        assert self.rw.rewrite(src, ["dashboard", "login"], "src/views") == src
        assert self.rw.referenced_modules(src, "src/views") == ["dashboard", "login"]
        assert self.rw.collect_aliases(src, "src/views")["DashboardCard"] == "dashboard"

    def test_multiline_import_with_from_on_next_line(self):
        src = "import type {\n  Row,\n}\n  from '../views/table/types'\nconst x = 1\n"
        assert self.rw.rewrite(src, [], "src/views") == "const x = 1\n"

    def test_braces_in_strings_do_not_confuse_blocks(self):
        src = (
            "const routes = [\n"
            "  {\n"
            "    path: '/a/{id}',\n"
            "    component: () => import('@/views/a/index.vue'),\n"
            "  },\n"
            "  { path: '/b', component: () => import('@/views/b/index.vue') },\n"
            "]\n"
        )
        out = self.rw.rewrite(src, ["b"], "src/views")
        assert "'/a/{id}'" not in out
        assert "path: '/b'" in out

    def test_block_without_module_reference_kept(self):
        src = "const routes = [\n  {\n    path: '/:all(.*)',\n    redirect: '/',\n  },\n]\n"
        assert self.rw.rewrite(src, [], "src/views") == src

    def test_comment_lines_untouched(self):
        src = "// import Old from '@/views/old/index.vue'\nconst x = 1\n"
        assert self.rw.rewrite(src, [], "src/views") == src

    def test_custom_modules_dir(self):
        src = "import Home from '@/pages/home/index.vue'\nimport About from '@/pages/about/index.vue'\n"
        out = self.rw.rewrite(src, ["home"], "src/pages")
        assert out == "import Home from '@/pages/home/index.vue'\n"


# ── Generic ───────────────────────────────────────────────────

class TestGenericRewriter:
    PATTERN = r"^\s*use\s+{modules_dir}::(\w+)"

    def test_line_filtering(self):
        rw = GenericImportRewriter("src/lib.rs", self.PATTERN)
        src = "use crate::util;\nuse mods::auth;\nuse mods::billing;\nfn main() {}\n"
        out = rw.rewrite(src, ["auth"], "mods")
        assert out == "use crate::util;\nuse mods::auth;\nfn main() {}\n"

    def test_referenced_modules(self):
        rw = GenericImportRewriter("src/lib.rs", self.PATTERN)
        src = "use mods::auth;\nuse mods::billing;\nuse mods::auth;\n// use mods::legacy;\n"
        assert rw.referenced_modules(src, "mods") == ["auth", "billing"]

    def test_modules_dir_is_escaped(self):
        rw = GenericImportRewriter("main.x", r"load\('{modules_dir}/(\w+)'\)")
        src = "load('a.b/auth')\nload('aXb/auth')\n"
        assert rw.referenced_modules(src, "a.b") == ["auth"]

    def test_invalid_pattern_rejected(self):
        with pytest.raises(UnsupportedConfigurationError):
            GenericImportRewriter("main.x", r"import ((\w+)")

    def test_pattern_without_group_rejected(self):
        with pytest.raises(UnsupportedConfigurationError):
            GenericImportRewriter("main.x", r"import \w+")


# ── Registry / process_entry_file ─────────────────────────────

class TestRegistry:
    def test_builtin_rewriters(self):
        assert isinstance(get_rewriter("fastapi"), FastApiImportRewriter)
        assert isinstance(get_rewriter("Vue3"), Vue3ImportRewriter)
        assert get_rewriter("django") is None

    def test_generic_requires_entry_and_pattern(self):
        assert get_generic_rewriter("", r"(\w+)") is None
        assert get_generic_rewriter("main.go", "") is None
        assert get_generic_rewriter("main.go", r"(\w+)").entry_file == "main.go"

    def test_process_entry_file_missing(self, tmp_path):
        assert process_entry_file(FastApiImportRewriter(), tmp_path, ["auth"], "modules") is False

    def test_process_entry_file_rewrites_in_place(self, tmp_path):
        (tmp_path / "main.py").write_text(
            "from modules.auth.routes import router as auth_router\n"
            "from modules.billing.routes import router as billing_router\n"
            "app.include_router(auth_router)\n"
            "app.include_router(billing_router)\n"
        )
        assert process_entry_file(FastApiImportRewriter(), tmp_path, ["auth"], "modules") is True
        assert (tmp_path / "main.py").read_text() == (
            "from modules.auth.routes import router as auth_router\n"
            "app.include_router(auth_router)\n"
        )

    def test_process_entry_file_keeps_crlf(self, tmp_path):
        (tmp_path / "main.py").write_bytes(b"from modules.auth import x\r\nprint(1)\r\n")
        process_entry_file(FastApiImportRewriter(), tmp_path, [], "modules")
        assert (tmp_path / "main.py").read_bytes() == b"print(1)\r\n"
